"""Unit tests for exception hierarchy and error handling."""

import pytest

from execrunner.core.exceptions import (
    E_EXIT_STATUS,
    E_SPAWN,
    E_VALIDATION,
    ConfigurationError,
    ExecRunnerException,
    ExecutionFailure,
    InvalidOptionError,
    SpawnError,
    format_error_for_log,
    format_error_for_user,
)


class TestExecRunnerException:
    """Test the base ExecRunnerException class."""

    def test_basic_creation(self):
        exc = ExecRunnerException("Test error")
        assert exc.message == "Test error"
        assert exc.error_code is None
        assert exc.metadata == {}
        assert str(exc) == "Test error"

    def test_with_error_code_and_metadata(self):
        exc = ExecRunnerException("Test error", error_code=E_VALIDATION, metadata={"k": 1})
        assert exc.error_code == E_VALIDATION
        assert exc.metadata == {"k": 1}

    def test_can_be_raised(self):
        with pytest.raises(ExecRunnerException, match="boom"):
            raise ExecRunnerException("boom")


class TestExecutionFailure:
    def test_defaults_to_exit_status_code(self):
        exc = ExecutionFailure("Execution of 'false' returned 1", command="false", exit_code=1)
        assert exc.error_code == E_EXIT_STATUS
        assert exc.metadata == {"command": "false", "exit_code": 1}
        assert exc.output is None

    def test_keeps_output(self):
        exc = ExecutionFailure("failed", command="x", exit_code=2, output="oops")
        assert exc.output == "oops"

    def test_is_not_a_spawn_error(self):
        exc = ExecutionFailure("failed", command="x", exit_code=2)
        assert not isinstance(exc, SpawnError)


class TestSpawnError:
    def test_defaults(self):
        exc = SpawnError("fork failed", command="ls")
        assert exc.error_code == E_SPAWN
        assert exc.metadata["command"] == "ls"


class TestInvalidOptionError:
    def test_defaults(self):
        exc = InvalidOptionError("missing", option="stdin_file", reason="missing")
        assert exc.error_code == E_VALIDATION
        assert exc.metadata == {"option": "stdin_file", "reason": "missing"}


def test_every_error_code_is_raised_by_some_exception():
    from execrunner.core import exceptions

    defined = {value for name, value in vars(exceptions).items() if name.startswith("E_")}
    used = {
        ExecutionFailure("x").error_code,
        SpawnError("x").error_code,
        InvalidOptionError("x").error_code,
        ConfigurationError("x").error_code,
    }
    assert defined == used == {E_EXIT_STATUS, E_SPAWN, E_VALIDATION}


class TestFormatErrorForUser:
    def test_execution_failure_uses_message(self):
        exc = ExecutionFailure("Execution of 'false' returned 1", command="false", exit_code=1)
        assert format_error_for_user(exc) == "Execution of 'false' returned 1"

    def test_spawn_error_with_command(self):
        exc = SpawnError("no such file", command="nope")
        assert format_error_for_user(exc) == "Could not start 'nope': no such file"

    def test_spawn_error_without_command(self):
        assert format_error_for_user(SpawnError("bad")) == "Could not start process: bad"

    def test_invalid_option(self):
        exc = InvalidOptionError("does not exist", option="stdin_file")
        assert format_error_for_user(exc) == "Invalid option 'stdin_file': does not exist"

    def test_configuration_error(self):
        exc = ConfigurationError("bad value", key="shell")
        assert format_error_for_user(exc) == "Configuration error 'shell': bad value"

    def test_base_exception(self):
        assert format_error_for_user(ExecRunnerException("plain")) == "plain"


class TestFormatErrorForLog:
    def test_execution_failure(self):
        exc = ExecutionFailure("failed", command="false", exit_code=1)
        data = format_error_for_log(exc)
        assert data["error_type"] == "ExecutionFailure"
        assert data["error_code"] == E_EXIT_STATUS
        assert data["command"] == "false"
        assert data["exit_code"] == 1

    def test_invalid_option(self):
        exc = InvalidOptionError("bad", option="uid", reason="unsupported")
        data = format_error_for_log(exc)
        assert data["option"] == "uid"
        assert data["reason"] == "unsupported"

    def test_configuration_error(self):
        exc = ConfigurationError("bad", key="temp_dir", reason="missing")
        data = format_error_for_log(exc)
        assert data["config_key"] == "temp_dir"
        assert data["metadata"] == {"config_key": "temp_dir", "reason": "missing"}
