"""
Tests for startup validation
"""

import pytest

from app.startup import StartupValidator, run_startup_checks


@pytest.fixture
def broken_sql_settings(test_settings):
    """SQL backend selected without a database URL"""
    return test_settings.model_copy(
        update={"persistence_backend": "sql", "database_url": ""}
    )


class TestStartupChecks:

    def test_valid_configuration_passes(self, test_settings):
        passed, warnings = run_startup_checks(test_settings)

        assert passed is True
        assert any("Square access token" in w for w in warnings)

    def test_sql_backend_requires_database_url(self, broken_sql_settings):
        passed, errors, _ = StartupValidator(broken_sql_settings).run_all_checks()

        assert passed is False
        assert errors == ["KDS_DATABASE_URL is required for the sql backend"]

    def test_errors_abort_production_start(self, broken_sql_settings):
        config = broken_sql_settings.model_copy(update={"environment": "production"})

        with pytest.raises(SystemExit) as exc_info:
            run_startup_checks(config)

        assert exc_info.value.code == 1

    def test_errors_tolerated_outside_production(self, broken_sql_settings):
        passed, _ = run_startup_checks(broken_sql_settings)

        assert passed is False
