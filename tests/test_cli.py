import csv
import io
import json

from expense_chat_parser.cli.main import main
from expense_chat_parser.core.config import get_settings

NOW = "2024-05-10T08:00:00"


def test_cli_json_output(capsys) -> None:
    code = main(["--now", NOW, "--no-llm", "--json", "Paid €1.5 for subway", "delete food expenses"])
    assert code == 0
    rows = json.loads(capsys.readouterr().out)
    assert rows[0]["category"] == "Transportation"
    assert rows[0]["amount"] == 1.5
    assert rows[0]["date"] == "2024-05-10"
    assert rows[1]["category"] == "DELETE_Food"


def test_cli_reads_file_and_writes_csv(tmp_path, capsys) -> None:
    messages = tmp_path / "messages.txt"
    messages.write_text("Had kimchi stew for lunch today for €8\n\nblah blah nothing useful\n", encoding="utf-8")
    out_csv = tmp_path / "out.csv"

    code = main(["--now", NOW, "--no-llm", "--file", str(messages), "--csv", str(out_csv)])
    assert code == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines == [
        "2024-05-10 | Food | Meal | Other | 8.00",
        "2024-05-10 | Other | Other | Other | (no amount)",
        f"[OK] Wrote {out_csv}",
    ]

    with out_csv.open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["category"] for r in rows] == ["Food", "Other"]
    assert rows[0]["description"] == "Had kimchi stew for lunch today for €8"


def test_cli_reads_stdin(monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("delete yesterday's data\n"))
    assert main(["--now", NOW, "--no-llm"]) == 0
    assert capsys.readouterr().out.strip() == "2024-05-09 | DELETE_YESTERDAY"


def test_cli_custom_taxonomy(tmp_path, capsys) -> None:
    table = tmp_path / "table.json"
    table.write_text(json.dumps({"categories": {"Pets": ["vet"]}}), encoding="utf-8")
    assert main(["--now", NOW, "--no-llm", "--json", "--taxonomy", str(table), "vet bill 80"]) == 0
    assert json.loads(capsys.readouterr().out)[0]["category"] == "Pets"


def test_cli_bad_taxonomy_exits_with_error(tmp_path, capsys) -> None:
    assert main(["--no-llm", "--taxonomy", str(tmp_path / "missing.json"), "coffee 3"]) == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_cli_missing_message_file(tmp_path, capsys) -> None:
    assert main(["--no-llm", "--file", str(tmp_path / "missing.txt")]) == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_cli_unreadable_env_taxonomy_uses_rule_chain(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setenv("EXPENSE_PARSER_TAXONOMY", str(tmp_path / "gone.json"))
    get_settings.cache_clear()
    try:
        code = main(["--now", NOW, "--no-llm", "Paid €1.5 for subway"])
    finally:
        get_settings.cache_clear()
    assert code == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].startswith("[WARN]")
    assert lines[-1] == "2024-05-10 | Transportation | Other | Other | 1.50"
