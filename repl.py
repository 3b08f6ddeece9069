# repl.py

"""
Command-line front end for the expression calculator.

Reads one expression per line, hands it to ``calculator.evaluate_expression`` and prints
``Result = <value>`` or ``Error: <message>``. Typing ``exit`` (or Ctrl-D) leaves the loop.

Settings come from the environment (a ``.env`` file is honoured) and can be overridden
on the command line:

    CALC_PROMPT         prompt text                      (default "Enter expression: ")
    CALC_EXIT_KEYWORD   line that ends the session       (default "exit")
    CALC_HISTORY_FILE   history file, empty to disable   (default ~/.shunting_calc_history)
    CALC_LOG_LEVEL      logging level                    (default WARNING)
    CALC_SHOW_POSTFIX   print the postfix form too       (default false)

Line editing uses prompt_toolkit when it is installed, readline otherwise.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from calculator import (
    EvalError,
    evaluate_expression,
    format_postfix,
    format_result,
    to_postfix,
    tokenize,
)

# Optional UI libs: prompt_toolkit preferred, fallback to readline for history on UNIX.
try:
    from prompt_toolkit import PromptSession
    from prompt_toolkit.history import FileHistory
    PROMPT_TOOLKIT_AVAILABLE = True
except ImportError:
    PROMPT_TOOLKIT_AVAILABLE = False
    try:
        import readline  # type: ignore
    except ImportError:
        readline = None  # type: ignore

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = os.path.expanduser("~/.shunting_calc_history")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
BANNER = "Expression Calculator with Negative Number Support (type 'exit' to quit)"


# --------------------------
# Settings
# --------------------------

class Settings(BaseModel):
    """Runtime settings for the REPL."""
    prompt: str = "Enter expression: "
    exit_keyword: str = "exit"
    history_file: Optional[str] = DEFAULT_HISTORY_FILE
    log_level: str = "WARNING"
    show_postfix: bool = False

    @field_validator('exit_keyword')
    @classmethod
    def exit_keyword_must_not_be_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Exit keyword cannot be empty')
        return v.strip()

    @field_validator('history_file')
    @classmethod
    def expand_history_file(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return os.path.expanduser(v.strip())

    @field_validator('log_level')
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f'Unknown log level: {v}')
        return level


_ENV_KEYS = {
    'prompt': 'CALC_PROMPT',
    'exit_keyword': 'CALC_EXIT_KEYWORD',
    'history_file': 'CALC_HISTORY_FILE',
    'log_level': 'CALC_LOG_LEVEL',
    'show_postfix': 'CALC_SHOW_POSTFIX',
}

def load_settings(**overrides) -> Settings:
    """Build settings from the environment (after loading .env), then apply non-None overrides."""
    load_dotenv()
    values = {}
    for field, key in _ENV_KEYS.items():
        env_value = os.getenv(key)
        if env_value is not None:
            values[field] = env_value
    for field, value in overrides.items():
        if value is not None:
            values[field] = value
    return Settings(**values)

def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


# --------------------------
# Help
# --------------------------

HELP_TEXT = """
Expression Calculator Help
--------------------------
Supported operations:
  - Addition:           3 + 5
  - Subtraction:        10 - 4
  - Multiplication:     100 * 2
  - Division:           7 / 2
  - Exponentiation:     2 ^ 3 ^ 2   (right-to-left: 2 ^ (3 ^ 2) = 512)
  - Parentheses:        100 * (2 + 12) / 14
  - Negative numbers:   -5 + 3, 2 * -4, (-2 + -5)
  - Decimals:           3.14 * 2

Precedence (high -> low): ^, then * /, then + -

A '-' at the start of the expression, after an operator or after '(' must be
followed directly by a number.

Commands:
  - help : Show this help message
  - exit : Quit the calculator
""".strip()


# --------------------------
# REPL
# --------------------------

class REPL:
    """Read-Eval-Print Loop for the calculator."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.session = None
        self._readline = None
        self._setup_history()

    def _setup_history(self) -> None:
        history_file = self.settings.history_file
        if PROMPT_TOOLKIT_AVAILABLE and sys.stdin.isatty():
            history = FileHistory(history_file) if history_file else None
            self.session = PromptSession(history=history)
        elif not PROMPT_TOOLKIT_AVAILABLE and readline is not None and history_file:
            self._readline = readline
            try:
                readline.read_history_file(history_file)
            except OSError:
                logger.debug("No readable history file at %s", history_file)

    def _save_history(self) -> None:
        if self._readline is None:
            return
        try:
            self._readline.write_history_file(self.settings.history_file)
        except OSError as e:
            logger.warning("Could not write history file %s: %s", self.settings.history_file, e)

    def read_line(self) -> str:
        if self.session is not None:
            return self.session.prompt(self.settings.prompt)
        return input(self.settings.prompt)

    def evaluate_line(self, line: str) -> Tuple[bool, str]:
        """Evaluate a single input line. Returns (ok, output)."""
        if line.strip().lower() == 'help':
            return True, HELP_TEXT
        try:
            value = evaluate_expression(line)
        except EvalError as e:
            return False, f"Error: {e}"
        except Exception as e:
            logger.exception("Unhandled error evaluating %r", line)
            return False, f"Unexpected error: {e}"
        output = f"Result = {format_result(value)}"
        if self.settings.show_postfix:
            # the line already evaluated, so both stages succeed again
            output = f"Postfix: {format_postfix(to_postfix(tokenize(line)))}\n{output}"
        return True, output

    def run(self) -> None:
        """Main REPL loop."""
        print(BANNER)
        try:
            while True:
                try:
                    line = self.read_line()
                except KeyboardInterrupt:
                    print("^C")
                    continue
                except EOFError:
                    print()
                    print("Goodbye!")
                    break

                if line == self.settings.exit_keyword:
                    print("Goodbye!")
                    break

                ok, out = self.evaluate_line(line)
                print(out)
                print()
        finally:
            self._save_history()


def evaluate_once(expression: str, settings: Settings) -> int:
    """Evaluate a single expression from the command line. Returns the process exit code."""
    ok, out = REPL(settings.model_copy(update={'history_file': None})).evaluate_line(expression)
    if ok:
        print(out)
        return 0
    print(out, file=sys.stderr)
    return 1


# --------------------------
# Entry point
# --------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Evaluate arithmetic expressions.")
    parser.add_argument(
        "expression",
        nargs="?",
        help="Expression to evaluate once. Starts the interactive calculator when omitted.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level (default: WARNING, or CALC_LOG_LEVEL).",
    )
    parser.add_argument(
        "--history-file",
        type=str,
        help="File used to persist input history.",
    )
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Do not read or write a history file.",
    )
    parser.add_argument(
        "--show-postfix",
        action="store_true",
        default=None,
        help="Print the postfix form of each expression before its result.",
    )
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    history_file = '' if args.no_history else args.history_file
    settings = load_settings(
        log_level=args.log_level,
        history_file=history_file,
        show_postfix=args.show_postfix,
    )
    configure_logging(settings.log_level)
    logger.debug("Settings: %s", settings)

    if args.expression is not None:
        return evaluate_once(args.expression, settings)

    REPL(settings).run()
    return 0

if __name__ == '__main__':
    sys.exit(main())
