"""Tests for URI batch import and export."""

import logging

import pytest

from otpvault import batch, engine
from otpvault.backends import BackendKind, VaultBackend, create_backend, unlock_backend
from otpvault.errors import NotFound, ValidationError

GOOD_BATCH = """\
otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP&issuer=GitHub
# comment lines are ignored

otpauth://totp/Simple?secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ&digits=8&algorithm=SHA256
otpauth://hotp/Counter?secret=JBSWY3DPEHPK3PXP&counter=3
otpauth://totp/ACME%20Co:bob?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ&period=60
"""


class TestParseBatch:

    def test_bad_line_is_skipped(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = batch.parse_batch(GOOD_BATCH)
        assert [e.name for e in result.entries] == ["GitHub:alice", "Simple", "ACME Co:bob"]
        assert [line for line, _ in result.skipped] == [5]
        assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1

    def test_undecodable_secret_is_skipped(self, caplog):
        content = "\n".join([
            "otpauth://totp/One?secret=JBSWY3DPEHPK3PXP",
            "otpauth://totp/Two?secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ",
            "otpauth://totp/Bad?secret=1!!",
            "otpauth://totp/Three?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ",
        ])
        with caplog.at_level(logging.WARNING):
            result = batch.parse_batch(content)
        assert [e.name for e in result.entries] == ["One", "Two", "Three"]
        assert [line for line, _ in result.skipped] == [3]
        assert "1!!" not in caplog.text

    def test_secret_not_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            batch.parse_batch("otpauth://hotp/x?secret=SUPERSECRETVALUE")
        assert "SUPERSECRETVALUE" not in caplog.text

    def test_empty_content(self):
        result = batch.parse_batch("\n\n# nothing\n")
        assert result.entries == []
        assert result.skipped == []


class TestFormatBatch:

    def test_one_line_per_entry(self, make_entry):
        content = batch.format_batch([make_entry(name="a"), make_entry(name="b")])
        lines = content.splitlines()
        assert len(lines) == 2
        assert all(line.startswith("otpauth://totp/") for line in lines)

    def test_nothing_to_export(self):
        with pytest.raises(ValidationError, match="No entries found to export"):
            batch.format_batch([])

    def test_file_round_trip(self, tmp_path, make_entry):
        path = str(tmp_path / "export.txt")
        entries = [make_entry(name="GitHub:alice"), make_entry(name="Other", digits=8)]
        assert batch.write_batch_file(path, entries) == 2

        result = batch.read_batch_file(path)
        assert [e.name for e in result.entries] == ["GitHub:alice", "Other"]
        assert result.skipped == []

    def test_read_missing(self, tmp_path):
        with pytest.raises(NotFound):
            batch.read_batch_file(str(tmp_path / "missing.txt"))


@pytest.mark.asyncio
class TestVaultBackend:

    async def _backend(self, path):
        await create_backend(BackendKind.VAULT, path, "pw")
        return await unlock_backend(BackendKind.VAULT, path, "pw")

    async def test_import_persists(self, tmp_path, vault_path):
        source = tmp_path / "import.txt"
        source.write_text(GOOD_BATCH, encoding="utf-8")
        backend = await self._backend(vault_path)
        assert isinstance(backend, VaultBackend)

        result = await backend.import_content(str(source))
        assert len(result.entries) == 3
        assert len(result.skipped) == 1
        assert all(e.id for e in result.entries)

        reopened = await engine.decrypt("pw", await engine.load(vault_path))
        assert len(reopened.get_entries()) == 3

    async def test_bad_secret_does_not_break_refresh(self, tmp_path, vault_path):
        source = tmp_path / "import.txt"
        source.write_text(GOOD_BATCH + "otpauth://totp/Bad?secret=1!!\n", encoding="utf-8")
        backend = await self._backend(vault_path)

        result = await backend.import_content(str(source))
        assert len(result.entries) == 3
        assert len(result.skipped) == 2

        refreshed = await engine.update_all_totp(backend.vault, unix_time=59)
        assert len(refreshed) == 3

    async def test_export(self, tmp_path, vault_path, make_entry):
        backend = await self._backend(vault_path)
        await backend.add_entry(make_entry(name="GitHub:alice"))
        target = tmp_path / "out" / "export.txt"

        assert await backend.export_content(str(target)) == 1
        assert target.read_text(encoding="utf-8").startswith("otpauth://totp/GitHub%3Aalice?")

    async def test_export_empty(self, tmp_path, vault_path):
        backend = await self._backend(vault_path)
        with pytest.raises(ValidationError):
            await backend.export_content(str(tmp_path / "export.txt"))

    async def test_update_and_delete(self, vault_path, make_entry):
        backend = await self._backend(vault_path)
        added = await backend.add_entry(make_entry(name="Old"))
        added.name = "New"
        await backend.update_entry(added)
        assert [e.name for e in await backend.list_entries()] == ["New"]

        await backend.delete_entry(added.id)
        assert await backend.list_entries() == []

    async def test_rejects_unsubmittable_entries(self, vault_path, make_entry):
        backend = await self._backend(vault_path)
        with pytest.raises(ValidationError):
            await backend.add_entry(make_entry(digits=7))
        with pytest.raises(ValidationError):
            await backend.add_entry(make_entry(secret="1!!"))

        added = await backend.add_entry(make_entry(name="Valid"))
        with pytest.raises(ValidationError):
            await backend.update_entry(make_entry(name="Valid", step=0, entry_id=added.id))

        reopened = await engine.decrypt("pw", await engine.load(vault_path))
        assert [(e.name, e.totp_config.step) for e in reopened.get_entries()] == [("Valid", 30)]

    async def test_update_unknown_entry(self, vault_path, make_entry):
        backend = await self._backend(vault_path)
        with pytest.raises(NotFound):
            await backend.update_entry(make_entry(entry_id="missing"))
        with pytest.raises(ValidationError):
            await backend.update_entry(make_entry())

    async def test_unlock_missing(self, vault_path):
        with pytest.raises(NotFound):
            await unlock_backend(BackendKind.VAULT, vault_path, "pw")
