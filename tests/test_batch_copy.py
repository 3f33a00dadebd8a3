"""Tests for direct and edit-then-copy batches."""
import asyncio
import time

import pytest

from conftest import FlakyStore
from envsync.secrets.domains.errors import (
    InvalidInput, InvalidSelection, NothingToEdit, UnknownEnvironment,
)
from envsync.secrets.domains.models import BatchStatus, Environment
from envsync.secrets.domains.registry import EnvironmentRegistry
from envsync.secrets.workflows.batch_copy import BatchCopyOrchestrator
from envsync.secrets.workflows.diff_engine import compare


class SlowStore(FlakyStore):
    """Delays reads of chosen names so completion order differs from input order."""

    def __init__(self, label, secrets, delays):
        super().__init__(label, secrets)
        self.delays = delays

    def get_current(self, name):
        time.sleep(self.delays.get(name, 0))
        return super().get_current(name)


@pytest.fixture
def orchestrator(registry):
    return BatchCopyOrchestrator(registry)


def run(coro):
    return asyncio.run(coro)


class TestDirectCopy:

    def test_copies_values_verbatim(self, orchestrator, target_store):
        result = run(orchestrator.direct_copy(["a", "b"], "src", "tgt"))

        assert result.success_count == 2
        assert result.failure_count == 0
        assert result.status is BatchStatus.SUCCESS
        assert target_store.get_current("a").value == "alpha"
        assert target_store.get_current("b").value == "bravo"

    def test_partial_failure_is_isolated(self, orchestrator, target_store):
        """Test that a failed write for 'b' does not stop 'a'."""
        target_store.fail_writes.add("b")

        result = run(orchestrator.direct_copy(["a", "b"], "src", "tgt"))

        assert result.success_count == 1
        assert result.failure_count == 1
        assert result.status is BatchStatus.PARTIAL
        outcomes = {outcome.secret_name: outcome for outcome in result.outcomes}
        assert outcomes["a"].success is True
        assert outcomes["b"].success is False
        assert "Network error" in outcomes["b"].message
        assert target_store.get_current("a").value == "alpha"
        assert target_store.get_current("b").value == "old-bravo"

    def test_read_failure_is_isolated(self, orchestrator, source_store, target_store):
        source_store.fail_reads.add("a")

        result = run(orchestrator.direct_copy(["a", "c"], "src", "tgt"))

        assert [o.success for o in result.outcomes] == [False, True]
        assert "a" not in target_store.write_calls

    def test_full_failure(self, orchestrator, target_store):
        target_store.fail_writes.update({"a", "b"})

        result = run(orchestrator.direct_copy(["a", "b"], "src", "tgt"))

        assert result.status is BatchStatus.FAILURE
        assert result.summary_message() == "Failed to copy all 2 secret(s)"

    def test_missing_source_secret_fails_only_that_item(self, orchestrator):
        result = run(orchestrator.direct_copy(["a", "zzz"], "src", "tgt"))

        assert result.success_count == 1
        assert result.outcomes[1].secret_name == "zzz"
        assert not result.outcomes[1].success

    def test_counts_match_selection_size(self, orchestrator, target_store):
        """Test that every selected name gets exactly one outcome."""
        target_store.fail_writes.add("c")
        names = ["a", "b", "c", "b"]

        result = run(orchestrator.direct_copy(names, "src", "tgt"))

        assert result.success_count + result.failure_count == 3
        assert [o.secret_name for o in result.outcomes] == ["a", "b", "c"]

    def test_outcomes_follow_input_order(self, target_store):
        """Test that outcome order is the input order, not completion order."""
        source = SlowStore("slow", {"a": "1", "b": "2", "c": "3"}, delays={"a": 0.2, "b": 0.1})
        registry = EnvironmentRegistry(
            [Environment("s", "S", "memory://s"), Environment("t", "T", "memory://t")],
            clients={"s": source, "t": target_store},
        )

        result = run(BatchCopyOrchestrator(registry).direct_copy(["a", "b", "c"], "s", "t"))

        assert [o.secret_name for o in result.outcomes] == ["a", "b", "c"]
        assert target_store.write_calls[0] == "c"

    def test_set_input_is_processed_in_sorted_order(self, orchestrator):
        result = run(orchestrator.direct_copy({"c", "a", "b"}, "src", "tgt"))
        assert [o.secret_name for o in result.outcomes] == ["a", "b", "c"]

    def test_direct_copy_is_idempotent(self, orchestrator, target_store):
        """Test that repeating a successful copy overwrites without errors."""
        first = run(orchestrator.direct_copy(["a", "b"], "src", "tgt"))
        second = run(orchestrator.direct_copy(["a", "b"], "src", "tgt"))

        assert first.failure_count == 0
        assert second.failure_count == 0
        assert len(target_store.list_versions("a")) == 2

    def test_limited_concurrency_still_copies_everything(self, registry):
        orchestrator = BatchCopyOrchestrator(registry, max_concurrency=1)
        result = run(orchestrator.direct_copy(["a", "b", "c"], "src", "tgt"))
        assert result.success_count == 3

    def test_invalid_concurrency(self, registry):
        with pytest.raises(ValueError):
            BatchCopyOrchestrator(registry, max_concurrency=0)

    def test_empty_selection_rejected(self, orchestrator):
        with pytest.raises(InvalidInput):
            run(orchestrator.direct_copy([], "src", "tgt"))

    def test_same_environment_rejected(self, orchestrator, target_store):
        with pytest.raises(InvalidInput):
            run(orchestrator.direct_copy(["a"], "src", "src"))
        assert target_store.write_calls == []

    def test_unknown_environment_rejected(self, orchestrator):
        with pytest.raises(UnknownEnvironment):
            run(orchestrator.direct_copy(["a"], "src", "nowhere"))

    def test_target_only_names_rejected_with_diff(self, registry, orchestrator, target_store):
        """Test that names only in the target are refused before any write."""
        diff = run(compare(registry, "src", "tgt"))

        with pytest.raises(InvalidSelection):
            run(orchestrator.direct_copy(["a", "d"], "src", "tgt", diff=diff))
        assert target_store.write_calls == []

    def test_sanitized_name_flag_is_passed_through(self, orchestrator, target_store, monkeypatch):
        original_upsert = target_store.upsert

        def sanitizing_upsert(name, value):
            record = original_upsert(name, value)
            record.name_was_sanitized = True
            return record

        monkeypatch.setattr(target_store, "upsert", sanitizing_upsert)

        result = run(orchestrator.direct_copy(["a"], "src", "tgt"))

        assert result.outcomes[0].name_was_sanitized is True


class TestEditThenCopy:

    def test_edited_and_verbatim_values(self, orchestrator, target_store):
        result = run(orchestrator.edit_then_copy(["a", "b"], "src", "tgt", edits={"a": "ALPHA"}))

        outcomes = {o.secret_name: o for o in result.outcomes}
        assert outcomes["a"].was_edited is True
        assert outcomes["b"].was_edited is False
        assert result.edited_count == 1
        assert target_store.get_current("a").value == "ALPHA"
        assert target_store.get_current("b").value == "bravo"
        assert result.summary_message() == "Successfully copied 2 secret(s) (1 edited)"

    def test_repeating_original_values_is_not_an_edit(self, orchestrator):
        """Test that edits equal to the loaded values are not counted as edits."""
        edits = {"a": "alpha", "b": "bravo", "c": "charlie"}

        result = run(orchestrator.edit_then_copy(["a", "b", "c"], "src", "tgt", edits=edits))

        assert all(o.was_edited is False for o in result.outcomes)
        assert result.edited_count == 0

    def test_load_failures_are_skipped(self, orchestrator, source_store, target_store):
        """Test that names that fail to load are dropped and reported."""
        source_store.fail_reads.add("b")

        result = run(orchestrator.edit_then_copy(["a", "b"], "src", "tgt", edits={"b": "new"}))

        assert [o.secret_name for o in result.outcomes] == ["a"]
        assert "b" in result.skipped
        assert "b" not in target_store.write_calls

    def test_nothing_to_edit(self, orchestrator, source_store, target_store):
        """Test that zero loadable secrets fails without writing."""
        source_store.fail_reads.update({"a", "b"})

        with pytest.raises(NothingToEdit):
            run(orchestrator.edit_then_copy(["a", "b"], "src", "tgt"))
        assert target_store.write_calls == []

    def test_load_phase_completes_before_writes(self, orchestrator, source_store, target_store):
        session = run(orchestrator.load_for_edit(["a", "b", "c"], "src", "tgt"))

        assert [s.name for s in session.loaded] == ["a", "b", "c"]
        assert target_store.write_calls == []

        run(orchestrator.commit_edits(session, {}))
        assert sorted(target_store.write_calls) == ["a", "b", "c"]

    def test_whitespace_value_is_copied_verbatim(self, orchestrator, source_store, target_store):
        """Test that a whitespace-only value is copied the same way by both copy modes."""
        source_store.upsert("pad", " ")

        direct = run(orchestrator.direct_copy(["pad"], "src", "tgt"))
        edited = run(orchestrator.edit_then_copy(["pad"], "src", "tgt", edits={}))
        explicit = run(orchestrator.edit_then_copy(["a"], "src", "tgt", edits={"a": "   "}))

        assert direct.outcomes[0].success is True
        assert edited.outcomes[0].success is True
        assert edited.outcomes[0].was_edited is False
        assert target_store.get_current("pad").value == " "
        assert explicit.outcomes[0].success is True
        assert target_store.get_current("a").value == "   "

    @pytest.mark.parametrize("bad_value", ["", None])
    def test_empty_value_fails_only_that_item(self, orchestrator, target_store, bad_value):
        result = run(orchestrator.edit_then_copy(["a", "b"], "src", "tgt", edits={"a": bad_value}))

        outcomes = {o.secret_name: o for o in result.outcomes}
        assert outcomes["a"].success is False
        assert "required" in outcomes["a"].message
        assert outcomes["b"].success is True
        assert "a" not in target_store.write_calls
        assert "a" not in target_store.list_names()

    def test_write_failure_is_isolated(self, orchestrator, target_store):
        target_store.fail_writes.add("c")

        result = run(orchestrator.edit_then_copy(["a", "c"], "src", "tgt", edits={"c": "x"}))

        assert result.status is BatchStatus.PARTIAL
        assert result.summary_message() == "Copied 1 secret(s), 1 failed"

    def test_edits_for_unloaded_names_are_ignored(self, orchestrator, target_store):
        result = run(orchestrator.edit_then_copy(["a"], "src", "tgt", edits={"zzz": "v"}))

        assert [o.secret_name for o in result.outcomes] == ["a"]
        assert "zzz" not in target_store.list_names()
