import logging

import pytest

from backoffice.core.logging import (
    RequestContextFilter,
    current_context,
    request_context,
    ticket_operation,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("backoffice.tickets", logging.INFO, __file__, 1, "moved", None, None)


def test_filter_tags_records_with_request_and_ticket():
    context_filter = RequestContextFilter()

    with request_context("req-1", "technician"):
        with ticket_operation("change_status", "t-9"):
            inside = _record()
            context_filter.filter(inside)
        after_ticket = _record()
        context_filter.filter(after_ticket)

    assert (inside.request_id, inside.actor, inside.ticket_id) == ("req-1", "technician", "t-9")
    assert (after_ticket.request_id, after_ticket.ticket_id) == ("req-1", "-")


def test_context_is_reset_after_errors():
    with pytest.raises(RuntimeError):
        with request_context("req-2", "admin"), ticket_operation("unassign", "t-3"):
            assert current_context() == {"request_id": "req-2", "actor": "admin", "ticket_id": "t-3"}
            raise RuntimeError("boom")

    assert current_context() == {"request_id": "-", "actor": "-", "ticket_id": "-"}


def test_operation_without_ticket_keeps_placeholder():
    with ticket_operation("create_ticket") as span:
        assert current_context()["ticket_id"] == "-"
        assert span is not None
