"""
Tests for the console proxy and logging helpers.

Verifies:
1. Injection of a capturing console (`set_console`).
2. Standard logging wrappers and the custom SUCCESS level.
3. Verbosity switches.
"""

import logging

import pytest
from rich.console import Console

from anyhint.utils.console import (
  console,
  get_console,
  log_error,
  log_info,
  log_success,
  log_warning,
  reset_console,
  set_console,
  set_verbosity,
)


@pytest.fixture(autouse=True)
def cleanup_console():
  """Ensures console is reset to stderr after every test."""
  reset_console()
  yield
  reset_console()


def test_default_console_writes_to_stderr():
  assert isinstance(get_console(), Console)
  assert get_console().stderr


def test_injected_console_captures_logs(captured_console):
  log_info("Loaded [path]x.py[/path]")
  log_success("Annotated")
  log_warning("Skipped x")
  log_error("Broken")
  output = captured_console.export_text()
  assert "Loaded x.py" in output
  assert "Annotated" in output
  assert "Skipped x" in output
  assert "Broken" in output
  assert "SUCCESS" in output


def test_proxy_forwards_to_backend(captured_console):
  console.print("direct")
  assert get_console() is captured_console
  assert "direct" in console.export_text()


def test_verbosity_levels(captured_console):
  set_verbosity(quiet=True)
  log_info("hidden info")
  log_warning("visible warning")
  set_verbosity(verbose=True)
  assert logging.getLogger().level == logging.DEBUG
  output = captured_console.export_text()
  assert "hidden info" not in output
  assert "visible warning" in output


def test_reset_restores_default():
  temp = Console()
  set_console(temp)
  assert get_console() is temp
  reset_console()
  assert get_console() is not temp
