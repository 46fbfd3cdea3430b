import json

import pytest

from lostfound.conftest import SAMPLE_CSV, SAMPLE_ITEMS, evaluation_reply
from lostfound.errors import EvaluationError, InvalidJsonContentError, RecordCountMismatchError
from lostfound.schema import FIELD_NAMES, compute_overall_score
from lostfound.validator import (
    NOT_EVALUATED_COMMENT,
    SYSTEM_PROMPT,
    load_json_records,
    parse_evaluation,
    validate_dataset,
    validate_record,
)

RECORD = dict(SAMPLE_ITEMS[0])


def test_overall_score_is_mean_of_field_scores():
    assert compute_overall_score([1.0, 0.5, 1.0, 0.0]) == 0.625
    assert compute_overall_score([]) == 0.0


def test_validate_dataset_pairs_rows_and_records(provider):
    provider.queue(evaluation_reply()).queue(evaluation_reply({"location": 0.0}))

    results = validate_dataset(provider, SAMPLE_CSV, json.dumps({"items": SAMPLE_ITEMS}))

    assert [r.index for r in results] == [1, 2]
    assert results[0].source_row == "Telefon, czarny, 13.07.2024, Warszawa"
    assert results[0].overall_score == 1.0
    assert results[1].overall_score == pytest.approx(7 / 8)
    assert provider.call_count == 2


def test_request_carries_schema_header_row_and_record(provider):
    provider.queue(evaluation_reply())

    validate_record(provider, ["Nazwa", "Kolor"], ["Telefon", "czarny"], RECORD, 1)

    system, user = provider.calls[0]
    assert system == {"role": "system", "content": SYSTEM_PROMPT}
    payload = json.loads(user["content"].split("INPUT:\n", 1)[1])
    assert [f["name"] for f in payload["target_schema"]] == list(FIELD_NAMES)
    assert payload["csv_header"] == ["Nazwa", "Kolor"]
    assert payload["csv_row"] == ["Telefon", "czarny"]
    assert payload["json_record"]["name"] == "Telefon"


def test_count_mismatch_raises_before_any_model_call(provider):
    with pytest.raises(RecordCountMismatchError) as excinfo:
        validate_dataset(provider, SAMPLE_CSV, json.dumps(SAMPLE_ITEMS[:1]))

    assert excinfo.value.csv_count == 2
    assert excinfo.value.json_count == 1
    assert provider.call_count == 0


def test_overall_score_is_recomputed_locally():
    scores = {"name": 1.0, "itemColor": 0.5, "additionalInfo": 1.0, "foundDate": 0.0,
              "location": 1.0, "foundPlace": 0.5, "notificationDate": 1.0, "warehousePlace": 0.0}
    reply = json.dumps(evaluation_reply(scores))

    result = parse_evaluation(reply, RECORD, 1, "row")

    assert result.overall_score == pytest.approx(0.625)


def test_json_value_comes_from_the_record():
    reply = evaluation_reply()
    reply["fields"]["name"]["json_value"] = "something else"

    result = parse_evaluation(json.dumps(reply), RECORD, 1, "row")

    assert result.fields["name"].json_value == "Telefon"


def test_scores_are_clamped_and_comments_blanked():
    reply = evaluation_reply({"name": 1.7, "itemColor": -0.2})
    reply["fields"]["name"]["comment"] = "should disappear"

    result = parse_evaluation(json.dumps(reply), RECORD, 1, "row")

    assert result.fields["name"].field_score == 1.0
    assert result.fields["name"].comment == ""
    assert result.fields["itemColor"].field_score == 0.0
    assert result.fields["itemColor"].comment == "mismatch"


def test_missing_field_is_reported_unevaluated():
    reply = evaluation_reply()
    del reply["fields"]["warehousePlace"]

    result = parse_evaluation(json.dumps(reply), RECORD, 1, "row")

    assert result.fields["warehousePlace"].field_score == 0.0
    assert result.fields["warehousePlace"].comment == NOT_EVALUATED_COMMENT
    assert result.overall_score == pytest.approx(7 / 8)


def test_partial_reply_is_averaged_over_all_fields():
    full = evaluation_reply({"itemColor": 0.5, "location": 0.0})
    names = ["name", "itemColor", "location", "foundDate"]
    reply = {"overall_score": 0.625, "fields": {n: full["fields"][n] for n in names}}
    reply["fields"]["serialNumber"] = {"field_score": 1.0}

    result = parse_evaluation(json.dumps(reply), RECORD, 1, "row")

    assert set(result.fields) == set(FIELD_NAMES)
    assert result.overall_score == pytest.approx(2.5 / 8)


def test_source_columns_are_distinct_and_ordered():
    reply = evaluation_reply()
    reply["fields"]["name"]["source_columns"] = ["B", "A", "B"]

    result = parse_evaluation(json.dumps(reply), RECORD, 1, "row")

    assert result.fields["name"].source_columns == ["B", "A"]


@pytest.mark.parametrize("content", [
    "nope",
    "[1, 2]",
    '{"overall_score": 1}',
    '{"fields": []}',
    '{"fields": {"name": "ok"}}',
    '{"fields": {"name": {"field_score": "high"}}}',
])
def test_unusable_evaluations_raise(content):
    with pytest.raises(EvaluationError) as excinfo:
        parse_evaluation(content, RECORD, 1, "row")
    assert excinfo.value.raw_response == content


def test_evaluation_error_aborts_the_batch(provider):
    provider.queue(evaluation_reply()).queue("garbage")

    with pytest.raises(EvaluationError):
        validate_dataset(provider, SAMPLE_CSV, SAMPLE_ITEMS)
    assert provider.call_count == 2


@pytest.mark.parametrize("content", [
    json.dumps(SAMPLE_ITEMS),
    json.dumps({"items": SAMPLE_ITEMS}),
    SAMPLE_ITEMS,
    {"items": SAMPLE_ITEMS},
])
def test_json_content_shapes(content):
    assert load_json_records(content) == SAMPLE_ITEMS


@pytest.mark.parametrize("content", ["{not json", '"text"', "42", {"records": []}, [1, 2]])
def test_invalid_json_content(content):
    with pytest.raises(InvalidJsonContentError):
        load_json_records(content)
