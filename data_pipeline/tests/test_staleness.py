import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "dags"))

import curated_sync.staleness as st
from curated_sync.overlay import TrackedEntry

from conftest import make_record


def _incomplete(mod_id, missing):
    record = make_record(mod_id)
    del record[missing]
    return record


# ══════════════════════════════════════════════════════════════════════════════
# classify — one tracked mod
# ══════════════════════════════════════════════════════════════════════════════

class TestClassify:
    def test_no_cache_is_new(self):
        d = st.classify(TrackedEntry("10"), None, set())
        assert (d.action, d.reason) == (st.FETCH, st.REASON_NEW)

    def test_no_cache_is_new_even_when_signalled(self):
        d = st.classify(TrackedEntry("10"), None, {"10"})
        assert d.reason == st.REASON_NEW

    def test_no_cache_is_new_when_signal_unavailable(self):
        d = st.classify(TrackedEntry("10"), None, None)
        assert d.reason == st.REASON_NEW

    def test_signalled_complete_record_is_updated_upstream(self):
        cached = make_record("10", updated_timestamp=5)
        d = st.classify(TrackedEntry("10"), cached, {"10"})
        assert (d.action, d.reason) == (st.FETCH, st.REASON_UPDATED)

    def test_missing_changelogs_is_missing_data(self):
        d = st.classify(TrackedEntry("10"), _incomplete("10", "changelogs"), set())
        assert (d.action, d.reason) == (st.FETCH, st.REASON_MISSING_DATA)

    def test_missing_files_is_missing_data(self):
        d = st.classify(TrackedEntry("10"), _incomplete("10", "files"), set())
        assert d.reason == st.REASON_MISSING_DATA

    def test_missing_data_wins_over_signal(self):
        d = st.classify(TrackedEntry("10"), _incomplete("10", "files"), {"10"})
        assert d.reason == st.REASON_MISSING_DATA

    def test_complete_unsignalled_record_is_reused(self):
        d = st.classify(TrackedEntry("10"), make_record("10"), {"99"})
        assert (d.action, d.reason) == (st.REUSE, None)

    def test_empty_files_and_changelogs_are_reused(self):
        cached = make_record("10", files=[], changelogs={})
        assert st.classify(TrackedEntry("10"), cached, set()).action == st.REUSE

    def test_unavailable_signal_refreshes_cached_records(self):
        d = st.classify(TrackedEntry("10"), make_record("10"), None)
        assert d.reason == st.REASON_UPDATED


# ══════════════════════════════════════════════════════════════════════════════
# partition — whole overlay
# ══════════════════════════════════════════════════════════════════════════════

class TestPartition:
    def test_splits_and_keeps_overlay_order(self):
        entries = [TrackedEntry(i) for i in ("4", "3", "2", "1")]
        records = {
            "4": make_record("4"),
            "3": make_record("3"),
            "1": _incomplete("1", "changelogs"),
        }
        plan = st.partition(entries, records, {"3"})

        assert [d.mod_id for d in plan.reuse] == ["4"]
        assert [d.mod_id for d in plan.fetch] == ["3", "2", "1"]
        assert [d.reason for d in plan.fetch] == [
            st.REASON_UPDATED, st.REASON_NEW, st.REASON_MISSING_DATA,
        ]

    def test_reason_counts(self):
        entries = [TrackedEntry("1"), TrackedEntry("2"), TrackedEntry("3")]
        plan = st.partition(entries, {"3": make_record("3")}, set())
        assert plan.reason_counts() == {st.REASON_NEW: 2}

    def test_full_cache_hit_fetches_nothing(self):
        entries = [TrackedEntry(str(i)) for i in range(10)]
        records = {str(i): make_record(str(i)) for i in range(10)}
        plan = st.partition(entries, records, set())
        assert plan.fetch == []
        assert len(plan.reuse) == 10
