import logging

import pytest

from modhandler.constants import MSG_BULK_FINISHED, MSG_NOTHING_TO_IMPORT
from modhandler.schemas.mod import AuthorFolder
from modhandler.services.bulk_import import BulkImportQueue, merge_author_folders
from modhandler.services.import_session import ImportState, InvalidTransitionError


def _folder(path: str, author: str) -> AuthorFolder:
    return AuthorFolder(folder_path=path, inferred_author=author)


@pytest.fixture
def queue(engine, catalog) -> BulkImportQueue:
    engine.author_folders = {
        "/lib/b": [_folder("/lib/b/Synae", "Synae"), _folder("/lib/b/HCoel", "HCoel")],
        "/lib/a": [_folder("/lib/a/Minki", "Minki"), _folder("/lib/b/Synae", "Other")],
    }
    engine.scan_results = {
        "/lib/a/Minki": [{"folder_path": "/lib/a/Minki/Luna", "display_name": "Luna"}],
        "/lib/b/HCoel": [{"folder_path": "/lib/b/HCoel/Erza", "display_name": "Erza"}],
    }
    return BulkImportQueue(engine, catalog)


class TestMergeAuthorFolders:
    def test_dedupes_first_wins_and_sorts(self):
        merged = merge_author_folders(
            [
                _folder("/z/Sloth", "Sloth"),
                _folder("/a/Linr", "Linr"),
                _folder("/z/Sloth", "Nimloth"),
            ]
        )
        assert [f.folder_path for f in merged] == ["/a/Linr", "/z/Sloth"]
        assert merged[1].inferred_author == "Sloth"

    def test_empty(self):
        assert merge_author_folders([]) == []


class TestBuild:
    @pytest.mark.asyncio
    async def test_builds_sorted_unique_queue(self, queue):
        assert await queue.build(["/lib/b", "/lib/a"]) is True
        assert queue.active is True
        assert queue.index == 0
        assert [e.folder_path for e in queue.entries] == [
            "/lib/a/Minki",
            "/lib/b/HCoel",
            "/lib/b/Synae",
        ]
        assert queue.entries[2].inferred_author == "Synae"

    @pytest.mark.asyncio
    async def test_first_session_seeded(self, queue):
        await queue.build(["/lib/a"])
        assert queue.session.author_dir == "/lib/a/Minki"
        assert queue.session.default_author == "Minki"
        assert queue.session.state == ImportState.IDLE

    @pytest.mark.asyncio
    async def test_failing_root_skipped(self, queue, engine, caplog):
        engine.author_folders["/lib/bad"] = RuntimeError("permission denied")
        with caplog.at_level(logging.WARNING):
            assert await queue.build(["/lib/bad", "/lib/a"]) is True
        assert len(queue.entries) == 2
        assert "/lib/bad" in caplog.text

    @pytest.mark.asyncio
    async def test_nothing_found(self, queue):
        assert await queue.build(["/lib/empty"]) is False
        assert queue.active is False
        assert queue.session is None
        assert queue.message == MSG_NOTHING_TO_IMPORT

    @pytest.mark.asyncio
    async def test_all_roots_failing(self, queue, engine):
        engine.author_folders["/lib/bad"] = RuntimeError("gone")
        assert await queue.build(["/lib/bad"]) is False
        assert queue.active is False

    @pytest.mark.asyncio
    async def test_no_roots(self, queue):
        assert await queue.build([]) is False
        assert queue.message == MSG_NOTHING_TO_IMPORT


class TestAutoScan:
    @pytest.mark.asyncio
    async def test_scans_once_when_settled(self, queue, engine):
        await queue.build(["/lib/a"])
        assert queue.is_settled() is True
        assert await queue.run_pending_auto_scan() is True
        assert engine.scan_calls == [("/lib/a/Minki", "Minki", None)]
        assert queue.session.state == ImportState.EDITING
        assert await queue.run_pending_auto_scan() is False
        assert len(engine.scan_calls) == 1

    @pytest.mark.asyncio
    async def test_skipped_when_author_dir_changed(self, queue, engine):
        await queue.build(["/lib/a"])
        queue.session.set_author_dir("/lib/a/Elsewhere")
        assert queue.is_settled() is False
        assert await queue.run_pending_auto_scan() is False
        assert engine.scan_calls == []

    @pytest.mark.asyncio
    async def test_skipped_when_author_differs(self, queue, engine):
        await queue.build(["/lib/a"])
        queue.session.set_default_author("Someone Else")
        assert await queue.run_pending_auto_scan() is False
        assert engine.scan_calls == []

    @pytest.mark.asyncio
    async def test_unknown_inferred_author(self, queue, engine):
        engine.author_folders = {"/lib/c": [_folder("/lib/c/Whoever", "unknown")]}
        await queue.build(["/lib/c"])
        assert queue.session.default_author == "unknown"
        assert await queue.run_pending_auto_scan() is True

    @pytest.mark.asyncio
    async def test_failed_auto_scan_not_repeated(self, queue, engine):
        engine.scan_error = RuntimeError("disk gone")
        await queue.build(["/lib/a"])
        assert await queue.run_pending_auto_scan() is False
        assert queue.session.state == ImportState.IDLE
        assert await queue.run_pending_auto_scan() is False
        assert len(engine.scan_calls) == 1

    @pytest.mark.asyncio
    async def test_inactive_queue(self, queue):
        assert await queue.run_pending_auto_scan() is False


class TestAdvance:
    @pytest.mark.asyncio
    async def test_commit_opens_next_session(self, queue, engine):
        await queue.build(["/lib/b", "/lib/a"])
        await queue.run_pending_auto_scan()
        first = queue.session
        assert await first.commit() is True
        assert queue.index == 1
        assert queue.session is not first
        assert queue.session.author_dir == "/lib/b/HCoel"
        await queue.run_pending_auto_scan()
        assert engine.scan_calls[-1] == ("/lib/b/HCoel", "HCoel", None)

    @pytest.mark.asyncio
    async def test_cancel_skips_entry(self, queue, engine):
        await queue.build(["/lib/b", "/lib/a"])
        queue.session.cancel()
        assert queue.index == 1
        assert engine.committed == []

    @pytest.mark.asyncio
    async def test_failed_commit_does_not_advance(self, queue, engine):
        await queue.build(["/lib/a"])
        await queue.run_pending_auto_scan()
        engine.commit_error = RuntimeError("database locked")
        assert await queue.session.commit() is False
        assert queue.index == 0
        assert queue.session.state == ImportState.EDITING
        queue.session.cancel()
        assert queue.index == 1

    @pytest.mark.asyncio
    async def test_last_close_finishes(self, queue):
        await queue.build(["/lib/a"])
        assert len(queue.entries) == 2
        queue.session.cancel()
        queue.session.cancel()
        assert queue.active is False
        assert queue.entries == []
        assert queue.index == 0
        assert queue.session is None
        assert queue.message == MSG_BULK_FINISHED

    @pytest.mark.asyncio
    async def test_stale_session_close_ignored(self, queue):
        await queue.build(["/lib/a"])
        stale = queue.session
        await queue.build(["/lib/b"])
        stale.cancel()
        assert queue.index == 0
        assert queue.session.author_dir == "/lib/b/HCoel"


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_leaves_bulk_mode(self, queue):
        await queue.build(["/lib/a"])
        queue.stop()
        assert queue.active is False
        assert queue.session is None

    @pytest.mark.asyncio
    async def test_stop_while_committing_rejected(self, queue):
        await queue.build(["/lib/a"])
        queue.session.state = ImportState.COMMITTING
        with pytest.raises(InvalidTransitionError):
            queue.stop()

    @pytest.mark.asyncio
    async def test_rebuild_while_scanning_rejected(self, queue):
        await queue.build(["/lib/a"])
        queue.session.state = ImportState.SCANNING
        with pytest.raises(InvalidTransitionError):
            await queue.build(["/lib/a"])

    def test_stop_when_inactive_is_noop(self, queue):
        queue.stop()
        assert queue.active is False


class TestToOut:
    @pytest.mark.asyncio
    async def test_snapshot(self, queue):
        await queue.build(["/lib/b", "/lib/a"])
        out = queue.to_out()
        assert out.active is True
        assert out.total == 3
        assert out.index == 0
        assert out.current.author_dir == "/lib/a/Minki"
