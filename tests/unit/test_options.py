"""Unit tests for execution options and command normalization."""

from pathlib import Path

import pytest

from execrunner.core.exceptions import InvalidOptionError
from execrunner.core.options import (
    ExecutionOptions,
    command_to_string,
    normalize_command,
)


class TestExecutionOptionsDefaults:
    def test_defaults(self):
        options = ExecutionOptions()
        assert options.fail_on_fail is True
        assert options.squelch is False
        assert options.combine is False
        assert options.stdin_file is None
        assert options.uid is None
        assert options.gid is None
        assert options.override_locale is True
        assert options.custom_environment == {}

    @pytest.mark.parametrize(
        "partial",
        [
            {},
            {"squelch": True},
            {"combine": True},
            {"fail_on_fail": False},
            {"override_locale": False},
            {"custom_environment": {"FOO": "bar"}},
        ],
    )
    def test_partial_mapping_equals_full_defaults(self, partial):
        expected = ExecutionOptions(**{**ExecutionOptions().__dict__, **partial})
        assert ExecutionOptions.from_dict(partial) == expected

    def test_partial_keeps_fail_on_fail_default(self):
        options = ExecutionOptions.from_dict({"squelch": True})
        assert options.fail_on_fail is True
        assert options.override_locale is True

    def test_none_custom_environment_becomes_empty(self):
        assert ExecutionOptions(custom_environment=None).custom_environment == {}

    def test_custom_environment_is_copied(self):
        env = {"A": "1"}
        options = ExecutionOptions(custom_environment=env)
        env["B"] = "2"
        assert options.custom_environment == {"A": "1"}

    def test_stdin_file_accepts_paths(self, tmp_path):
        options = ExecutionOptions(stdin_file=tmp_path / "in")
        assert options.stdin_file == str(tmp_path / "in")


class TestExecutionOptionsValidation:
    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidOptionError, match="Unknown execution option"):
            ExecutionOptions.from_dict({"failonfail": True})

    def test_non_bool_flag_rejected(self):
        with pytest.raises(InvalidOptionError, match="squelch must be a bool"):
            ExecutionOptions(squelch="yes")

    def test_non_integer_uid_rejected(self):
        with pytest.raises(InvalidOptionError, match="uid"):
            ExecutionOptions(uid="root")

    def test_bad_environment_name_rejected(self):
        with pytest.raises(InvalidOptionError, match="Invalid environment variable name"):
            ExecutionOptions(custom_environment={"A=B": "x"})

    def test_non_string_environment_value_rejected(self):
        with pytest.raises(InvalidOptionError, match="must be a string"):
            ExecutionOptions(custom_environment={"A": 1})


class TestCoerce:
    def test_none(self):
        assert ExecutionOptions.coerce(None) == ExecutionOptions()

    def test_instance_passes_through(self):
        options = ExecutionOptions(squelch=True)
        assert ExecutionOptions.coerce(options) is options

    def test_mapping(self):
        assert ExecutionOptions.coerce({"combine": True}).combine is True

    def test_keyword_overrides(self):
        options = ExecutionOptions.coerce({"combine": True}, squelch=True)
        assert options.combine is True
        assert options.squelch is True

    def test_unknown_override(self):
        with pytest.raises(InvalidOptionError):
            ExecutionOptions.coerce(None, silent=True)

    def test_wrong_type(self):
        with pytest.raises(InvalidOptionError, match="options must be"):
            ExecutionOptions.coerce(["squelch"])


class TestNormalizeCommand:
    def test_string_kept(self):
        assert normalize_command("echo 'a b'") == "echo 'a b'"

    def test_sequence_tokens_verbatim(self):
        assert normalize_command(("prog", "arg with spaces", "*.txt")) == [
            "prog",
            "arg with spaces",
            "*.txt",
        ]

    def test_path_tokens(self):
        assert normalize_command([Path("/bin/echo"), "hi"]) == ["/bin/echo", "hi"]

    def test_empty_string_rejected(self):
        with pytest.raises(InvalidOptionError, match="must not be empty"):
            normalize_command("   ")

    def test_empty_sequence_rejected(self):
        with pytest.raises(InvalidOptionError, match="program"):
            normalize_command([])

    def test_non_string_token_rejected(self):
        with pytest.raises(InvalidOptionError, match="strings or os.PathLike"):
            normalize_command(["echo", 3])

    def test_bytes_rejected(self):
        with pytest.raises(InvalidOptionError):
            normalize_command(b"echo")


def test_command_to_string():
    assert command_to_string("ls -l") == "ls -l"
    assert command_to_string(["ls", "-l"]) == "ls -l"
