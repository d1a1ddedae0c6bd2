from datetime import datetime, timezone

import pytest

from pipeline_logs.schemas.log_schemas import MISSING_VALUE, LogEntry

from tests.fakes import make_entry, make_row


@pytest.mark.parametrize("absent", [None, ""])
def test_absent_text_fields_render_as_placeholder(absent) -> None:
    entry = make_entry(0, from_email=absent, file_name=absent)

    assert entry.display_value("from_address") == MISSING_VALUE == "?"
    assert entry.display_value("file_name") == "?"


def test_present_values_render_as_is() -> None:
    entry = make_entry(7)

    assert entry.display_value("from_address") == "buyer7@example.com"
    assert entry.display_value("file_name") == "PO-0007.pdf"


def test_order_status_gate_follows_linked_order() -> None:
    assert make_entry(0, purchase_order_guid="so-1").can_update_order_status
    assert not make_entry(0).can_update_order_status


def test_column_names_map_onto_entry_fields() -> None:
    row = make_row(0, purchase_order_guid="so-1", log_lines=None)

    entry = LogEntry.model_validate(row)

    assert entry.from_address == row["from_email"]
    assert entry.linked_order_ref == "so-1"
    assert entry.log_lines == []


def test_naive_timestamp_is_read_as_utc() -> None:
    entry = make_entry(0, processed_at=datetime(2025, 3, 14, 9, 0))

    assert entry.timestamp == datetime(2025, 3, 14, 9, 0, tzinfo=timezone.utc)


def test_with_order_status_returns_a_copy() -> None:
    entry = make_entry(0, purchase_order_guid="so-1", order_status="Parked")

    updated = entry.with_order_status("Placed")

    assert updated.order_status == "Placed"
    assert entry.order_status == "Parked"
    assert updated.id == entry.id
