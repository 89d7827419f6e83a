import argparse
import atexit
import datetime
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import flask
from flask import jsonify, request

from cloudy_calc import config
from cloudy_calc.numbers import number_to_string
from cloudy_calc.session import ASSIGNMENT_PATTERN, Interpreter
from cloudy_calc.storage import (
    create_session_db,
    delete_session_db,
    init_db,
    load_session,
    save_session,
)
from cloudy_calc.tables import CONSTANTS, CURRENCIES
from cloudy_calc.units import unit_names

# --- Logging Setup ---
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = flask.Flask(__name__)
app.config["DEBUG"] = config.DEBUG_MODE

CLI_COMMANDS = ["help", "vars", "history", "keep-session", "clear", "exit", "quit"]

HELP_TEXT = """
Usage examples:
  2 + 3 * 4            - Basic arithmetic (^ or ** for powers)
  sin(30degrees)       - Functions: sin cos tan sqrt log ln abs floor ceil round
  *2                   - Continue from the last result (@)
  x = 10               - Assign a variable
  x = 5 mi in km       - Assign the number of a conversion result
  5 mi in km           - Convert units
  1 1/2 cup in tbsp    - Fractions and mixed fractions
  5 km - 300 m in mi   - Add or subtract units of one kind
  5 feet 3 inches in cm
  32 F to C            - Temperature (C, F, K, R)
  100 USD to EUR       - Currency (static rates)
  4 + 0xAF in hex      - Number bases (hex, octal, binary, decimal)
  golden-ratio         - Constants

Commands:
  vars                 - Show all variables
  history              - Show previous inputs
  clear                - Reset variables, history and results
  keep-session         - Keep the session after exiting (for later use)
  help                 - Show this help message
  exit/quit            - Exit the calculator
"""


# --- API Endpoints ---


def _read_query():
    """Returns ``(query, None)`` or ``(None, error_response)``."""
    data = request.get_json(silent=True)
    if not data or "query" not in data:
        return None, (jsonify({"error": "Missing 'query' in JSON payload"}), 400)

    query = str(data["query"]).strip()
    if not query:
        return None, (jsonify({"error": "Query cannot be empty"}), 400)
    return query, None


def _session_not_found(session_id):
    return jsonify({"error": f"Session '{session_id}' not found or failed to load"}), 404


def _process(interpreter: Interpreter, query: str):
    """Runs one query, logging and reporting unexpected failures as 500."""
    try:
        return interpreter.process_input(query), None
    except Exception as e:
        logger.error(f"Internal error while evaluating '{query}': {e}", exc_info=True)
        return None, (
            jsonify({"error": "An internal server error occurred during calculation."}),
            500,
        )


@app.route("/calculate", methods=["POST"])
def calculate():
    """Performs a calculation without requiring a session."""
    query, error_response = _read_query()
    if error_response:
        return error_response

    # For sessionless calculation, we don't want variable assignments
    if ASSIGNMENT_PATTERN.match(query):
        return jsonify({"error": "Variable assignments require a session. Use /sessions endpoint."}), 400

    entry, error_response = _process(Interpreter(), query)
    if error_response:
        return error_response
    if entry is None:
        return jsonify({"result": None, "cleared": True}), 200
    if entry.kind == "error":
        logger.warning(f"No-session: could not evaluate '{query}': {entry.error}")
        return jsonify({"error": entry.error}), 400
    return jsonify({"result": entry.output, "type": entry.kind}), 200


@app.route("/sessions", methods=["POST"])
def create_session():
    """Creates a new calculation session."""
    session_id = create_session_db(Interpreter().to_dict())
    if session_id:
        return jsonify({"session_id": session_id}), 201
    return jsonify({"error": "Failed to create session"}), 500


@app.route("/sessions/<string:session_id>", methods=["GET"])
def get_session(session_id):
    """Returns the variables and input history of a session."""
    state = load_session(session_id)
    if state is None:
        return _session_not_found(session_id)
    interpreter = Interpreter.from_dict(state)
    return jsonify({"variables": interpreter.variables, "history": interpreter.history}), 200


@app.route("/sessions/<string:session_id>", methods=["DELETE"])
def delete_session(session_id):
    """Deletes a calculation session."""
    if delete_session_db(session_id):
        return "", 204
    return jsonify({"error": f"Failed to delete session '{session_id}' (may not exist)"}), 404


@app.route("/sessions/<string:session_id>/calculate", methods=["POST"])
def calculate_in_session(session_id):
    """Performs a calculation or assignment within a session."""
    query, error_response = _read_query()
    if error_response:
        return error_response

    state = load_session(session_id)
    if state is None:
        return _session_not_found(session_id)
    interpreter = Interpreter.from_dict(state)

    entry, error_response = _process(interpreter, query)
    if error_response:
        return error_response

    if not save_session(session_id, interpreter.to_dict()):
        return jsonify({"error": "Failed to save session"}), 500

    if entry is None:
        return jsonify({"result": None, "cleared": True}), 200
    if entry.kind == "error":
        logger.warning(f"Session {session_id}: could not evaluate '{query}': {entry.error}")
        return jsonify({"error": entry.error}), 400

    body = {
        "result": entry.output,
        "type": entry.kind,
        "last_result": interpreter.variables["@"],
    }
    assignment_match = ASSIGNMENT_PATTERN.match(query)
    if assignment_match:
        body["variable_set"] = assignment_match.group(1)
    logger.info(f"Session {session_id}: '{query}' -> {entry.output}")
    return jsonify(body), 200


@app.route("/sessions/<string:session_id>/history", methods=["POST"])
def navigate_session_history(session_id):
    """Steps through a session's input history, like the up/down arrow keys."""
    data = request.get_json(silent=True)
    direction = data.get("direction") if isinstance(data, dict) else None
    if type(direction) is not int or direction not in (-1, 1):
        return jsonify({"error": "'direction' must be -1 or 1"}), 400

    state = load_session(session_id)
    if state is None:
        return _session_not_found(session_id)
    interpreter = Interpreter.from_dict(state)
    text = interpreter.navigate_history(direction)
    if not save_session(session_id, interpreter.to_dict()):
        return jsonify({"error": "Failed to save session"}), 500
    return jsonify({"input": text, "index": interpreter.history_index}), 200


# --- CLI Interface ---


def _setup_readline(interpreter: Interpreter) -> bool:
    """Enables line editing, persistent history and tab completion."""
    try:
        import readline
    except ImportError:
        return False

    try:
        readline.read_history_file(config.HISTORY_FILE)
    except OSError:
        logger.debug(f"No readline history at {config.HISTORY_FILE}")
    readline.set_history_length(1000)
    atexit.register(readline.write_history_file, config.HISTORY_FILE)

    units = unit_names()

    def completer(text, state):
        if " " in text:
            # Complete the target of a conversion
            for keyword in (" to ", " in "):
                if keyword in text:
                    head, partial = text.rsplit(keyword, 1)
                    partial = partial.strip()
                    options = list(CURRENCIES) if keyword == " to " and any(
                        code in head.upper() for code in CURRENCIES
                    ) else units
                    matches = [f"{head}{keyword}{option}" for option in options if option.startswith(partial)]
                    return matches[state] if state < len(matches) else None
            return None

        matches = [command for command in CLI_COMMANDS if command.startswith(text)]
        if text:
            matches.extend(name for name in interpreter.variables if name.startswith(text))
            matches.extend(name for name in CONSTANTS if name.startswith(text))
        return matches[state] if state < len(matches) else None

    readline.parse_and_bind("tab: complete")
    readline.set_completer_delims("\t\n")
    readline.set_completer(completer)
    return True


def run_cli_mode(argv=None):
    """Run calculator in interactive CLI mode."""
    parser = argparse.ArgumentParser(description="Cloudy Calculator CLI")
    parser.add_argument("--session", "-s", type=str, help="Use an existing session ID")
    parser.add_argument("--keep-session", "-k", action="store_true", help="Keep the session after exiting")
    parser.add_argument("--new-session", "-n", action="store_true", help="Create a new session instead of using last session")
    parser.add_argument(
        "--expression", "-e", action="append",
        help="Evaluate an expression, print the result and exit (repeatable)",
    )
    args = parser.parse_args(argv)

    if args.expression:
        return run_expressions(args.expression, args.session)

    # Workspace file to remember last session
    config_dir = Path(config.WORKSPACE_DIR)
    workspace_file = config_dir / "workspace.json"
    config_dir.mkdir(parents=True, exist_ok=True)

    def load_workspace():
        if workspace_file.exists():
            try:
                with open(workspace_file, "r") as f:
                    return json.load(f)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring unreadable workspace file {workspace_file}")
        return {}

    def save_workspace(data):
        with open(workspace_file, "w") as f:
            json.dump(data, f, indent=2)

    def remember_session(session_id, description=None):
        now = datetime.datetime.now().isoformat()
        info = workspace.setdefault("session_info", {}).setdefault(session_id, {"created_at": now})
        info["last_used"] = now
        if description:
            info["description"] = description
        workspace["last_session_id"] = session_id
        save_workspace(workspace)

    workspace = load_workspace()

    if args.session:
        session_id_to_load = args.session
    elif args.new_session:
        session_id_to_load = None
    else:
        session_id_to_load = workspace.get("last_session_id")

    init_db()

    interpreter = Interpreter()
    keep_session = args.keep_session
    session_id = None

    if session_id_to_load:
        state = load_session(session_id_to_load)
        if state is not None:
            session_id = session_id_to_load
            interpreter = Interpreter.from_dict(state)
            print(f"Loaded existing session: {session_id}")
        else:
            print(f"Session {session_id_to_load} not found. Creating a new session.")
    if session_id is None:
        session_id = create_session_db(interpreter.to_dict())
        if session_id:
            print(f"Session created: {session_id}")

    if session_id:
        remember_session(session_id)

    has_readline = _setup_readline(interpreter)

    print("Cloudy Calculator - Press Ctrl+C to exit")
    print("Enter calculations or conversions like: '2 + 2', '5 mi in km' or '32 F to C'")
    if has_readline:
        print("Use TAB to complete commands, variables and units")

    if session_id and not keep_session:
        print("Session will be deleted on exit. Use 'keep-session' command to keep it.")
    elif session_id and keep_session:
        print("Session will be kept after exiting.")
    elif not session_id:
        print("Warning: Failed to create session. Variables won't be saved.")

    try:
        while True:
            try:
                query = input("calc> ")
            except EOFError:
                print()
                break

            command = query.strip().lower()
            if not command:
                continue

            if command in ("exit", "quit", "bye"):
                break

            if command == "keep-session":
                keep_session = True
                if session_id:
                    remember_session(session_id, "Kept session")
                    print(f"Session {session_id} will be kept after exiting.")
                    print("The next time you run cloudy-calc, this session will be loaded automatically.")
                continue

            if command == "vars":
                names = [name for name in interpreter.variables if name != "@"]
                if not names:
                    print("No variables defined.")
                else:
                    print("Current variables:")
                    for name in names:
                        print(f"  {name} = {number_to_string(interpreter.variables[name])}")
                print(f"  @ = {number_to_string(interpreter.variables['@'])}")
                continue

            if command == "history":
                if not interpreter.history:
                    print("No history yet.")
                for number, line in enumerate(interpreter.history, start=1):
                    print(f"  {number:3d}  {line}")
                continue

            if command == "help":
                print(HELP_TEXT)
                continue

            try:
                entry = interpreter.process_input(query)
            except Exception as e:
                logger.error(f"Error processing input '{query}': {e}", exc_info=True)
                print(f"Error processing input: {e}")
                continue

            if entry is None:
                print("Cleared.")
            else:
                print(entry.output)

            if session_id:
                save_session(session_id, interpreter.to_dict())

    except KeyboardInterrupt:
        print("\nKeyboard interrupt received. Exiting...")

    if session_id and not keep_session:
        print(f"Deleting temporary session: {session_id}")
        delete_session_db(session_id)
        workspace.get("session_info", {}).pop(session_id, None)
        if workspace.get("last_session_id") == session_id:
            workspace["last_session_id"] = None
        save_workspace(workspace)
    elif session_id and keep_session:
        print(f"Keeping session: {session_id}")
        remember_session(session_id, "Kept session")

    print("Thank you for using Cloudy Calculator!")


def run_expressions(expressions, session_id: Optional[str] = None) -> int:
    """Evaluates each expression in order and prints its result.

    With a session ID the expressions see that session's variables and the
    session is saved afterwards. Returns 1 if any expression failed.
    """
    interpreter = Interpreter()
    if session_id:
        init_db()
        state = load_session(session_id)
        if state is None:
            print(f"Session {session_id} not found.", file=sys.stderr)
            return 1
        interpreter = Interpreter.from_dict(state)

    status = 0
    for expression in expressions:
        entry = interpreter.process_input(expression)
        if entry is None:
            continue
        print(entry.output)
        if entry.kind == "error":
            status = 1

    if session_id:
        save_session(session_id, interpreter.to_dict())
    return status


# --- Entry Points ---
def start_web_server():
    """Entry point for running the web server."""
    init_db()  # Ensure database exists and table is created on startup
    logger.info(f"Starting web server on http://{config.HOST}:{config.PORT}")
    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG_MODE)


def start_cli_mode():
    """Entry point for the ``cloudy-calc`` command."""
    sys.exit(run_cli_mode() or 0)


def main():
    """Runs the CLI when arguments are given, the web server otherwise."""
    if len(sys.argv) > 1:
        sys.exit(run_cli_mode() or 0)
    start_web_server()


if __name__ == "__main__":
    main()
