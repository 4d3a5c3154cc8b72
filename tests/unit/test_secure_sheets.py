"""Tests for the hardened master-log writer"""

from __future__ import annotations

import asyncio

import pytest
from cryptography.fernet import Fernet

from minddump.infrastructure.limiter import SlidingWindowLimiter
from minddump.sheets.security import (
    SecureSheetsWriter,
    SheetsEncryption,
    entry_hash,
    sanitize_entry,
    security_warnings,
)
from minddump.thoughts.models import MasterSheetEntry

SHEET_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz0123456789_-abcde"


def make_entry(raw_input: str = "Call the dentist", category: str = "Reminder"):
    return MasterSheetEntry(
        raw_input=raw_input, category=category, timestamp="2025-01-01T00:00:00+00:00"
    )


@pytest.fixture(autouse=True)
def configured_sheet(monkeypatch):
    monkeypatch.setenv("MASTER_SHEET_ID", SHEET_ID)


class TestEncryption:
    def test_disabled_without_key(self):
        assert SheetsEncryption(key="").enabled is False

    def test_round_trip(self):
        encryption = SheetsEncryption(key=Fernet.generate_key().decode())
        token = encryption.encrypt("my password is hunter2")
        assert token != "my password is hunter2"
        assert encryption.decrypt(token) == "my password is hunter2"

    def test_malformed_key(self):
        with pytest.raises(ValueError, match="SHEETS_ENCRYPTION_KEY"):
            SheetsEncryption(key="not-a-fernet-key")

    @pytest.mark.parametrize(
        "text,category,expected",
        [
            ("lunch with Sam", "Person", True),
            ("my password is hunter2", "Note", True),
            ("card 4111 1111 1111 1111", "Note", True),
            ("buy milk", "Task", False),
        ],
    )
    def test_should_encrypt(self, text, category, expected):
        assert SheetsEncryption.should_encrypt(text, category) is expected


def test_sensitive_row_is_encrypted(fake_sheets):
    key = Fernet.generate_key().decode()
    writer = SecureSheetsWriter(client=fake_sheets, encryption=SheetsEncryption(key=key))
    entry = make_entry("my bank account number", "Note")

    result = asyncio.run(writer.secure_log_to_master_sheet(entry))

    assert result.success
    row = fake_sheets.appended[0][2][0]
    assert row[7] == "YES"
    assert SheetsEncryption(key=key).decrypt(row[0]) == "my bank account number"
    assert row[6] == entry_hash(entry)


def test_hash_is_stable_and_covers_identity_fields():
    entry = make_entry()
    assert entry_hash(entry) == entry_hash(make_entry())
    assert entry_hash(entry) != entry_hash(make_entry(category="Task"))
    assert len(entry_hash(entry)) == 64


def test_sanitize_entry_caps_fields():
    entry = MasterSheetEntry(raw_input="x" * 20_000, category="  Task  ", subcategory="s" * 300)
    sanitized = sanitize_entry(entry)
    assert len(sanitized.raw_input) == 10_000
    assert sanitized.category == "Task"
    assert len(sanitized.subcategory) == 100


def test_size_limit_refuses_write(fake_sheets_factory):
    client = fake_sheets_factory(existing_rows=5)
    writer = SecureSheetsWriter(client=client, encryption=SheetsEncryption(key=""), max_rows=5)
    result = asyncio.run(writer.secure_log_to_master_sheet(make_entry()))
    assert result.success is False
    assert result.error == "Sheet size limit exceeded"
    assert client.appended == []


def test_size_check_failure_is_advisory(fake_sheets):
    fake_sheets.fail_get = RuntimeError("read denied")
    writer = SecureSheetsWriter(client=fake_sheets, encryption=SheetsEncryption(key=""))
    assert asyncio.run(writer.secure_log_to_master_sheet(make_entry())).success


def test_rate_limit_refuses_write(fake_sheets):
    writer = SecureSheetsWriter(
        client=fake_sheets,
        encryption=SheetsEncryption(key=""),
        limiter=SlidingWindowLimiter(max_events=1, window_seconds=60),
    )
    assert asyncio.run(writer.secure_log_to_master_sheet(make_entry())).success
    result = asyncio.run(writer.secure_log_to_master_sheet(make_entry()))
    assert result.success is False
    assert result.error == "Rate limit exceeded"


def test_append_failure_is_reported_not_raised(fake_sheets):
    fake_sheets.fail_append["Master Log!A:H"] = RuntimeError("permission denied")
    writer = SecureSheetsWriter(client=fake_sheets, encryption=SheetsEncryption(key=""))
    result = asyncio.run(writer.secure_log_to_master_sheet(make_entry()))
    assert result.success is False
    assert result.error == "permission denied"


def test_security_warnings(monkeypatch):
    assert security_warnings() == [
        "SHEETS_ENCRYPTION_KEY not set - sensitive data will not be encrypted"
    ]
    monkeypatch.delenv("MASTER_SHEET_ID")
    assert "Master sheet ID not configured" in security_warnings()
