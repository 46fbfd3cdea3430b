"""Shared fixtures: a scripted model provider and sample import data."""

import json
from typing import Dict, List

import pytest

from lostfound.drafts import DraftRepository
from lostfound.llm_client import LLMProvider
from lostfound.log_config import reset_logging
from lostfound.schema import FIELD_NAMES, FieldEvaluation, RecordEvaluation
from lostfound.storage import MemoryKeyValueStore


class FakeProvider(LLMProvider):
    """Answers with queued replies and records every request"""

    def __init__(self, replies=None):
        self.replies: List = list(replies or [])
        self.calls: List[List[Dict[str, str]]] = []

    def queue(self, reply) -> "FakeProvider":
        self.replies.append(reply)
        return self

    def complete(self, messages):
        self.calls.append(messages)
        if not self.replies:
            raise AssertionError("FakeProvider received an unexpected call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return reply
        return json.dumps(reply, ensure_ascii=False)

    @property
    def call_count(self) -> int:
        return len(self.calls)


SAMPLE_CSV = (
    "Lp.;Nazwa przedmiotu;Kolor;Data znalezienia;Miejsce znalezienia\n"
    "1;Telefon;czarny;13.07.2024;Warszawa\n"
    "2;Portfel skórzany;brązowy;13-14 lipca 2024 r.;Nowy Sącz\n"
)


def make_item(**values) -> Dict[str, str]:
    item = {name: "" for name in FIELD_NAMES}
    item.update(values)
    return item


SAMPLE_ITEMS = [
    make_item(name="Telefon", itemColor="czarny", foundDate="2024-07-13", location="Warszawa"),
    make_item(name="Portfel skórzany", itemColor="brązowy", foundDate="2024-07-13", location="Nowy Sącz"),
]


def evaluation_reply(scores: Dict[str, float] = None, default: float = 1.0) -> Dict:
    """Validator reply giving every field ``default`` unless overridden"""
    scores = scores or {}
    fields = {}
    for name in FIELD_NAMES:
        score = scores.get(name, default)
        fields[name] = {
            "source_columns": [name],
            "source_value": "",
            "json_value": "",
            "field_score": score,
            "comment": "" if score == 1.0 else "mismatch",
        }
    return {"overall_score": 0.5, "fields": fields}


def make_evaluation(index: int, score: float = 1.0, name: str = "Telefon",
                    source_row: str = "") -> RecordEvaluation:
    fields = {
        field_name: FieldEvaluation([], "", "", score, "")
        for field_name in FIELD_NAMES
    }
    fields["name"].json_value = name
    return RecordEvaluation(
        index=index,
        source_row=source_row or f"{name}, row {index}",
        overall_score=score,
        fields=fields,
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def repository(store):
    return DraftRepository(store)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_logging()
