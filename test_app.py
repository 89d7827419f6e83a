"""Tests for the HTTP API and the command line interface."""

import json

import pytest

from cloudy_calc import app as calc_app
from cloudy_calc import config
from cloudy_calc.storage import init_db


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE", str(tmp_path / "sessions.db"))
    init_db()
    calc_app.app.config["TESTING"] = True
    with calc_app.app.test_client() as client:
        yield client


def test_calculate(client):
    response = client.post("/calculate", json={"query": "2+3*4"})
    assert response.status_code == 200
    assert response.get_json() == {"result": "14", "type": "normal"}


def test_calculate_conversion(client):
    response = client.post("/calculate", json={"query": "5 mi in km"})
    assert response.get_json() == {"result": "8.04672 km", "type": "units"}


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "Missing 'query' in JSON payload"),
        ({"query": "  "}, "Query cannot be empty"),
        ({"query": "10/0"}, "Division by zero"),
        ({"query": "x = 5"}, "Variable assignments require a session. Use /sessions endpoint."),
    ],
)
def test_calculate_errors(client, payload, message):
    response = client.post("/calculate", json=payload)
    assert response.status_code == 400
    assert response.get_json() == {"error": message}


def test_session_lifecycle(client):
    response = client.post("/sessions")
    assert response.status_code == 201
    session_id = response.get_json()["session_id"]

    response = client.post(f"/sessions/{session_id}/calculate", json={"query": "x = 5"})
    assert response.get_json() == {
        "result": "x = 5", "type": "variable", "last_result": 5, "variable_set": "x",
    }

    response = client.post(f"/sessions/{session_id}/calculate", json={"query": "x * 2"})
    assert response.get_json() == {"result": "10", "type": "normal", "last_result": 10}

    response = client.get(f"/sessions/{session_id}")
    assert response.get_json() == {"variables": {"@": 10, "x": 5}, "history": ["x = 5", "x * 2"]}

    assert client.delete(f"/sessions/{session_id}").status_code == 204
    assert client.delete(f"/sessions/{session_id}").status_code == 404
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_session_errors_are_saved(client):
    session_id = client.post("/sessions").get_json()["session_id"]
    response = client.post(f"/sessions/{session_id}/calculate", json={"query": "1/0"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Division by zero"}
    assert client.get(f"/sessions/{session_id}").get_json()["history"] == ["1/0"]


def test_unknown_session(client):
    response = client.post("/sessions/missing/calculate", json={"query": "1+1"})
    assert response.status_code == 404


def test_navigate_session_history(client):
    session_id = client.post("/sessions").get_json()["session_id"]
    for query in ("1+1", "2+2"):
        client.post(f"/sessions/{session_id}/calculate", json={"query": query})

    url = f"/sessions/{session_id}/history"
    assert client.post(url, json={"direction": -1}).get_json() == {"input": "2+2", "index": 1}
    assert client.post(url, json={"direction": -1}).get_json() == {"input": "1+1", "index": 0}
    assert client.post(url, json={"direction": 1}).get_json() == {"input": "2+2", "index": 1}
    assert client.post(url, json={"direction": 1}).get_json() == {"input": "", "index": 2}
    assert client.post(url, json={"direction": 2}).status_code == 400
    assert client.post(url, json={"direction": True}).status_code == 400
    assert client.post(url, json={"direction": -1.0}).status_code == 400
    assert client.post(url, json={"direction": 1.0}).status_code == 400
    assert client.post(url, json={"direction": "1"}).status_code == 400
    assert client.get(f"/sessions/{session_id}").get_json()["history"] == ["1+1", "2+2"]


@pytest.fixture
def cli(tmp_path, monkeypatch):
    """Runs the interactive CLI against scripted input lines."""
    monkeypatch.setattr(config, "DATABASE", str(tmp_path / "sessions.db"))
    monkeypatch.setattr(config, "WORKSPACE_DIR", str(tmp_path / "workspace"))
    monkeypatch.setattr(calc_app, "_setup_readline", lambda interpreter: False)

    def run(lines, argv=()):
        remaining = iter(lines)

        def fake_input(prompt=""):
            try:
                return next(remaining)
            except StopIteration:
                raise EOFError

        monkeypatch.setattr("builtins.input", fake_input)
        return calc_app.run_cli_mode(list(argv))

    return run


def test_cli_evaluates_lines(cli, capsys):
    cli(["2 + 2", "*3", "x = 2.5", "32 F to C", "vars", "exit"])
    out = capsys.readouterr().out
    assert "4\n" in out
    assert "12\n" in out
    assert "0.000000 C\n" in out
    assert "  x = 2.5\n" in out
    assert "  @ = 0\n" in out
    assert "Deleting temporary session" in out


def test_cli_keeps_session_between_runs(cli, capsys, tmp_path):
    cli(["x = 7", "keep-session"])
    out = capsys.readouterr().out
    assert "x = 7" in out
    assert "Keeping session" in out

    workspace = json.loads((tmp_path / "workspace" / "workspace.json").read_text())
    session_id = workspace["last_session_id"]
    assert workspace["session_info"][session_id]["description"] == "Kept session"

    cli(["x + 1", "quit"])
    out = capsys.readouterr().out
    assert f"Loaded existing session: {session_id}" in out
    assert "8\n" in out


def test_cli_new_session_flag(cli, capsys):
    cli(["keep-session"])
    capsys.readouterr()
    cli(["x + 1"], argv=["-n"])
    out = capsys.readouterr().out
    assert "Session created:" in out
    assert "Error:" in out


def test_one_shot_expressions(capsys):
    assert calc_app.run_cli_mode(["-e", "2+2", "-e", "5 mi in km"]) == 0
    assert capsys.readouterr().out == "4\n8.04672 km\n"

    assert calc_app.run_expressions(["1/0"]) == 1
    assert capsys.readouterr().out == "Error: Division by zero\n"
