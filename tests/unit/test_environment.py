"""Unit tests for scoped environment overlays."""

import os
import threading

import pytest

from execrunner.core.config import LOCALE_ENV_VARS, USER_ENV_VARS, ExecRunnerConfig
from execrunner.core.environment import (
    environment_lock,
    sanitized_environment,
    sanitized_values,
    with_env,
)
from execrunner.core.options import ExecutionOptions

LANG_SENTINEL = "en_US.UTF-8"
USER_SENTINEL = "Abracadabra"


@pytest.fixture
def locale_sentinels():
    return {name: LANG_SENTINEL for name in LOCALE_ENV_VARS}


@pytest.fixture
def user_sentinels():
    return {name: USER_SENTINEL for name in USER_ENV_VARS}


class TestWithEnv:
    def test_sets_and_restores(self, saved_environ):
        with with_env({"EXECRUNNER_TEST_VAR": "inside"}):
            assert os.environ["EXECRUNNER_TEST_VAR"] == "inside"
        assert "EXECRUNNER_TEST_VAR" not in os.environ

    def test_none_removes_for_scope(self, saved_environ):
        with with_env({"EXECRUNNER_TEST_VAR": "outer"}):
            with with_env({"EXECRUNNER_TEST_VAR": None}):
                assert "EXECRUNNER_TEST_VAR" not in os.environ
            assert os.environ["EXECRUNNER_TEST_VAR"] == "outer"

    def test_restores_on_error(self, saved_environ):
        with pytest.raises(RuntimeError):
            with with_env({"EXECRUNNER_TEST_VAR": "inside"}):
                raise RuntimeError("boom")
        assert "EXECRUNNER_TEST_VAR" not in os.environ

    def test_restores_previous_value(self, saved_environ):
        with with_env({"EXECRUNNER_TEST_VAR": "before"}):
            with with_env({"EXECRUNNER_TEST_VAR": "during"}):
                assert os.environ["EXECRUNNER_TEST_VAR"] == "during"
            assert os.environ["EXECRUNNER_TEST_VAR"] == "before"


class TestSanitizedValues:
    def test_default_overrides_locale_and_clears_user(self):
        values = sanitized_values(ExecutionOptions())
        for name in LOCALE_ENV_VARS:
            expected = "C" if name in ("LANG", "LC_ALL") else ""
            assert values[name] == expected
        for name in USER_ENV_VARS:
            assert values[name] == ""

    def test_keep_locale(self):
        values = sanitized_values(ExecutionOptions(override_locale=False))
        for name in LOCALE_ENV_VARS:
            assert name not in values
        for name in USER_ENV_VARS:
            assert values[name] == ""

    def test_custom_environment_applied_last(self):
        options = ExecutionOptions(custom_environment={"LANG": "de_DE", "HOME": "/srv"})
        values = sanitized_values(options)
        assert values["LANG"] == "de_DE"
        assert values["HOME"] == "/srv"

    def test_configured_lists(self):
        config = ExecRunnerConfig(
            locale_env_vars=("LANG", "LC_ALL", "LC_PAPER"),
            user_env_vars=("MAIL",),
            neutral_locale="POSIX",
        )
        values = sanitized_values(ExecutionOptions(), config)
        assert values == {"MAIL": "", "LANG": "POSIX", "LC_ALL": "POSIX", "LC_PAPER": ""}


class TestSanitizedEnvironment:
    def test_overrides_locale_inside_scope(self, saved_environ, locale_sentinels):
        with with_env(locale_sentinels):
            with sanitized_environment(ExecutionOptions()):
                for name in LOCALE_ENV_VARS:
                    expected = "C" if name in ("LANG", "LC_ALL") else ""
                    assert os.environ[name] == expected
            for name in LOCALE_ENV_VARS:
                assert os.environ[name] == LANG_SENTINEL

    def test_does_not_override_locale_when_disabled(self, saved_environ, locale_sentinels):
        with with_env(locale_sentinels):
            with sanitized_environment(ExecutionOptions(override_locale=False)):
                for name in LOCALE_ENV_VARS:
                    assert os.environ[name] == LANG_SENTINEL

    def test_clears_user_vars_and_restores(self, saved_environ, user_sentinels):
        with with_env(user_sentinels):
            with sanitized_environment(ExecutionOptions()):
                for name in USER_ENV_VARS:
                    assert os.environ[name] == ""
            for name in USER_ENV_VARS:
                assert os.environ[name] == USER_SENTINEL

    def test_removes_variables_that_were_absent(self, saved_environ):
        absent = {name: None for name in (*LOCALE_ENV_VARS, *USER_ENV_VARS)}
        with with_env(absent):
            with sanitized_environment(ExecutionOptions(custom_environment={"EXECRUNNER_X": "1"})):
                assert os.environ["LANG"] == "C"
                assert os.environ["EXECRUNNER_X"] == "1"
            for name in absent:
                assert name not in os.environ
            assert "EXECRUNNER_X" not in os.environ

    def test_restores_after_error(self, saved_environ, user_sentinels):
        with with_env(user_sentinels):
            with pytest.raises(OSError):
                with sanitized_environment(ExecutionOptions()):
                    raise OSError("spawn failed")
            for name in USER_ENV_VARS:
                assert os.environ[name] == USER_SENTINEL

    def test_yields_applied_values(self, saved_environ):
        with sanitized_environment(ExecutionOptions(custom_environment={"EXECRUNNER_X": "1"})) as v:
            assert v["EXECRUNNER_X"] == "1"

    def test_holds_lock_for_scope(self, saved_environ):
        acquired = []

        def try_acquire():
            acquired.append(environment_lock.acquire(blocking=False))
            if acquired[-1]:
                environment_lock.release()

        with sanitized_environment(ExecutionOptions()):
            worker = threading.Thread(target=try_acquire)
            worker.start()
            worker.join()
        assert acquired == [False]
