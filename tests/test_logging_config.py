"""Tests for log formatting and context output."""

import logging
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from builders import make_environment, make_record, utc
from envreport.cache import TtlCache
from envreport.errors import ApiError
from envreport.logging_config import LOG_FORMAT, ContextFormatter, configure_logging
from envreport.reports import ReportAggregator


@pytest.fixture
def package_logger():
    logger = logging.getLogger("envreport")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def test_context_formatter_appends_extra_fields():
    """Verify extra fields are rendered after the message."""
    record = logging.LogRecord("envreport.cache", logging.INFO, __file__, 1, "Cache miss", (), None)
    record.cache_key = "build:7"

    formatted = ContextFormatter(LOG_FORMAT).format(record)

    assert formatted.endswith("Cache miss | cache_key=build:7")


def test_context_formatter_leaves_plain_records_unchanged():
    """Verify records without extra fields keep the base format."""
    record = logging.LogRecord("envreport", logging.INFO, __file__, 1, "hello %s", ("world",), None)

    assert ContextFormatter("%(message)s").format(record) == "hello world"


def test_degraded_report_logs_record_id_and_error(package_logger, capsys):
    """Verify a failed build lookup is logged with the deployment record id and error text."""
    configure_logging("INFO")
    client = Mock()
    client.list_environments.return_value = [make_environment(1, "Prod")]
    client.list_variable_groups.return_value = []
    client.list_deployment_records.return_value = [make_record(7, finish=utc(1), owner_id=70)]
    client.get_build.side_effect = ApiError("upstream 500 boom", status_code=500)

    ReportAggregator(ado_client=client, cache=TtlCache()).build_reports()

    out = capsys.readouterr().out
    warning = next(line for line in out.splitlines() if "WARNING" in line)
    assert "deployment record 7" in warning
    assert "boom" in warning
    assert "build_id=70" in warning
