"""
Unit tests for the JSONL report store.
"""

import os

from services.storage import ReportStore


def test_append_and_load(builder, store):
    reports = [builder.build({"message": "a"}), builder.build({"message": "b"})]

    assert store.append_reports(reports) == 2
    assert store.append_reports(reports[:1]) == 1

    loaded = store.load_reports()
    assert [r.message for r in loaded] == ["a", "b", "a"]
    assert loaded[0] == reports[0]


def test_missing_file(tmp_path):
    store = ReportStore(str(tmp_path / "nope.jsonl"))
    assert store.load_reports() == []
    status = store.stat()
    assert status.store_exists is False
    assert status.size_bytes == 0
    assert status.total_lines == 0


def test_bad_lines_are_skipped(builder, store):
    store.append_reports([builder.build({"message": "a"})])
    with open(store.file_path, "a", encoding="utf-8") as f:
        f.write("garbage\n\n{\"no_id\": true}\n")

    assert len(store.load_reports()) == 1


def test_stat(builder, store):
    store.append_reports([builder.build({"message": "a"})])
    status = store.stat()
    assert status.store_exists is True
    assert status.total_lines == 1
    assert status.size_bytes == os.path.getsize(store.file_path)
