"""Tests for the command-line interface."""

import json

import pytest

from app.cli import create_parser, main


@pytest.fixture
def paper_file(tmp_path):
    document = {
        "schoolName": "Springfield High",
        "schoolAddress": "12 Elm Street",
        "examType": "Unit Test",
        "className": "Class IX",
        "subject": "Science",
        "duration": {"hours": 1, "minutes": 0},
        "generalInstructions": "1. Answer all questions.",
        "totalMarks": 50,
        "sections": [
            {
                "id": "s1",
                "title": "Section A",
                "instructions": "Choose the correct option.",
                "questions": [
                    {"id": "q1", "type": "MCQ", "text": "2 + 2 = ?", "marks": 1,
                     "options": ["2", "4", "6", "8"]},
                    {"id": "q2", "type": "Long Answer", "text": "Explain gravity.", "marks": 5},
                ],
            }
        ],
    }
    path = tmp_path / "paper.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_parser_commands():
    parser = create_parser()
    args = parser.parse_args(["render", "paper.json", "--output", "out.pdf"])
    assert args.command == "render"
    assert args.output == "out.pdf"
    assert args.font is None


def test_new_to_stdout(capsys):
    assert main(["new"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["totalMarks"] == 0
    assert data["sections"][0]["title"] == "Section A"


def test_new_to_file(tmp_path):
    output = tmp_path / "blank.json"

    assert main(["new", "--output", str(output)]) == 0

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["className"] == "Class X"


def test_validate_ok(paper_file, capsys):
    assert main(["validate", str(paper_file)]) == 0

    out = capsys.readouterr().out
    assert "OK" in out
    assert "Questions:   2" in out
    assert "Total marks: 6" in out


def test_validate_invalid(tmp_path, capsys):
    path = tmp_path / "broken.json"
    path.write_text('{"schoolName": "x"}', encoding="utf-8")

    assert main(["validate", str(path)]) == 1
    assert "Invalid paper" in capsys.readouterr().out


def test_validate_missing_file(tmp_path, capsys):
    assert main(["validate", str(tmp_path / "nope.json")]) == 1
    assert "File not found" in capsys.readouterr().out


def test_preview(paper_file, capsys):
    assert main(["preview", str(paper_file)]) == 0

    out = capsys.readouterr().out
    assert "SPRINGFIELD HIGH" in out
    assert "Q.1. 2 + 2 = ?  [1]" in out
    assert "(d) 8" in out
    assert "Total Marks for Section A: 6" in out


def test_render(paper_file, tmp_path):
    output = tmp_path / "paper.pdf"

    assert main(["render", str(paper_file), "--output", str(output)]) == 0

    assert output.read_bytes().startswith(b"%PDF-")


def test_render_invalid_paper(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[]", encoding="utf-8")

    assert main(["render", str(path), "--output", str(tmp_path / "out.pdf")]) == 1
    assert not (tmp_path / "out.pdf").exists()
