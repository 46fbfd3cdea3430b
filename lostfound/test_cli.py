import json

import pytest

from lostfound import cli
from lostfound.conftest import SAMPLE_CSV, SAMPLE_ITEMS, FakeProvider, evaluation_reply, make_evaluation


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "zguby.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    return path


@pytest.fixture
def use_provider(monkeypatch):
    def install(*replies):
        provider = FakeProvider(list(replies))
        monkeypatch.setattr(cli, "get_default_provider", lambda settings: provider)
        return provider
    return install


@pytest.fixture(autouse=True)
def memory_repository(monkeypatch, repository):
    monkeypatch.setattr(cli, "open_repository", lambda: repository)
    return repository


def test_process_prints_json(csv_file, use_provider, capsys):
    use_provider({"items": SAMPLE_ITEMS})

    cli.main(["process", str(csv_file)])

    payload = json.loads(capsys.readouterr().out)
    assert payload["action"] == "process"
    assert payload["jsonData"]["items"][1]["location"] == "Nowy Sącz"


def test_validate_writes_output_file(csv_file, tmp_path, use_provider):
    json_file = tmp_path / "zguby.json"
    json_file.write_text(json.dumps({"items": SAMPLE_ITEMS}), encoding="utf-8")
    output = tmp_path / "results.json"
    use_provider(evaluation_reply(), evaluation_reply())

    cli.main(["validate", str(csv_file), str(json_file), "--output", str(output)])

    results = json.loads(output.read_text(encoding="utf-8"))["results"]
    assert [r["index"] for r in results] == [1, 2]


def test_full_saves_draft(csv_file, use_provider, memory_repository, capsys):
    use_provider({"items": SAMPLE_ITEMS}, evaluation_reply(), evaluation_reply({"name": 0.5}))

    cli.main(["full", str(csv_file), "--save-draft"])

    assert "Draft 'zguby' saved with 2 record(s)" in capsys.readouterr().out
    draft = memory_repository.find_draft("zguby")
    assert len(draft.records) == 2
    assert memory_repository.get_draft_file("zguby.csv") == (csv_file.read_bytes(), "text/csv")


def test_pipeline_error_exits_with_message(csv_file, use_provider, capsys):
    use_provider({"items": []})

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["process", str(csv_file)])

    assert excinfo.value.code == 1
    assert "Error: Model returned 0 items for 2 CSV rows" in capsys.readouterr().err


def test_missing_file_exits(tmp_path, capsys):
    with pytest.raises(SystemExit):
        cli.main(["process", str(tmp_path / "missing.csv")])
    assert "Error: cannot read" in capsys.readouterr().err


def test_drafts_list_show_discard(memory_repository, capsys):
    memory_repository.save_draft("zguby.csv", [make_evaluation(1, 0.9), make_evaluation(2, 0.2, name="")], [1])

    cli.main(["drafts", "list"])
    out = capsys.readouterr().out
    assert "zguby" in out
    assert "Total: 1 draft(s)" in out

    cli.main(["drafts", "show", "zguby"])
    out = capsys.readouterr().out
    assert "90% Wysoka" in out
    assert "20% Bardzo niska" in out

    cli.main(["drafts", "discard", "zguby.csv"])
    assert "discarded" in capsys.readouterr().out
    assert memory_repository.get_drafts() == []


def test_drafts_show_unknown(capsys):
    with pytest.raises(SystemExit):
        cli.main(["drafts", "show", "missing"])
    assert "no draft named 'missing'" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    cli.main([])
    assert "Lost & Found Import CLI" in capsys.readouterr().out
