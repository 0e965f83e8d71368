# tests/test_inspector.py
# -*- coding: utf-8 -*-

import pytest
from unittest.mock import patch

from plafond import inspector
from plafond.datatypes import Dimension, Severity, SystemResourceUsage
from plafond.exceptions import IdentityResolutionFailed, TargetNotFound
from plafond.modules.evaluator import Thresholds


@pytest.fixture
def populated_proc(fake_proc):
    fake_proc.add(1, name="systemd", ppid=0)
    fake_proc.add(200, name="nginx", ppid=1, fds=10)
    fake_proc.add(201, name="nginx", ppid=200, fds=3800)
    fake_proc.add(202, name="nginx", ppid=200, fds=3000)
    fake_proc.add(300, name="postgres", ppid=1, threads=50000)
    return fake_proc


def test_batch_with_exited_pid_keeps_one_entry_per_pid(populated_proc):
    entries = inspector.gather_entries([200, 31337, 201], populated_proc.root)

    assert [entry.pid for entry in entries] == [200, 201, 31337]
    failed = entries[2]
    assert failed.failed
    assert failed.record is None
    assert failed.failure.kind == "IdentityUnreadable"
    assert "process exited" in failed.failure.message
    assert failed.evaluation.worst is Severity.UNKNOWN
    assert not entries[0].failed


def test_entries_ordered_by_pid_with_many_workers(populated_proc):
    entries = inspector.gather_entries([300, 202, 1, 201, 200], populated_proc.root, max_workers=4)
    assert [entry.pid for entry in entries] == [1, 200, 201, 202, 300]


def test_duplicate_pids_inspected_once(populated_proc):
    entries = inspector.gather_entries([200, 200, 1], populated_proc.root)
    assert [entry.pid for entry in entries] == [1, 200]


def test_empty_pid_list():
    assert inspector.gather_entries([]) == []


def test_partial_read_failure_does_not_abort_batch(populated_proc):
    (populated_proc.root / "202" / "limits").unlink()
    entries = inspector.gather_entries([201, 202], populated_proc.root)
    assert entries[0].evaluation.severity_of(Dimension.FDS) is Severity.CRITICAL
    assert entries[1].failure.kind == "LimitsUnreadable"


def test_unexpected_error_becomes_failure_entry(populated_proc):
    with patch('plafond.inspector.gather_process', side_effect=RuntimeError("boom")):
        entries = inspector.gather_entries([200], populated_proc.root)
    assert entries[0].failed
    assert "boom" in entries[0].failure.message


def test_inspect_single_pid(populated_proc):
    report = inspector.inspect_single_pid(201, populated_proc.root)

    assert report.mode == "pid"
    assert report.target == "201"
    assert report.timestamp is not None
    assert report.system_usage is None
    assert len(report.entries) == 1
    entry = report.entries[0]
    assert entry.record.name == "nginx"
    assert entry.evaluation.severity_of(Dimension.FDS) is Severity.CRITICAL


def test_inspect_single_pid_exited(populated_proc):
    report = inspector.inspect_single_pid(4040, populated_proc.root)
    assert report.counts_by_severity()["failed"] == 1


def test_inspect_tree(populated_proc):
    report = inspector.inspect_tree(200, populated_proc.root)

    assert report.mode == "tree"
    assert [entry.pid for entry in report.entries] == [200, 201, 202]
    counts = report.counts_by_severity()
    assert counts["critical"] == 1
    assert counts["warning"] == 1
    assert counts["ok"] == 1


def test_inspect_tree_custom_thresholds(populated_proc):
    report = inspector.inspect_tree(200, populated_proc.root, thresholds=Thresholds(0.5, 0.6))
    assert report.counts_by_severity()["critical"] == 2


def test_inspect_tree_missing_root_propagates(populated_proc):
    with pytest.raises(TargetNotFound):
        inspector.inspect_tree(9999, populated_proc.root)


@patch('plafond.inspector.collect_pids_for_uid', return_value=[300, 1])
@patch('plafond.inspector.resolve_uid', return_value=70)
def test_inspect_user(mock_resolve, mock_collect, populated_proc):
    report = inspector.inspect_user("postgres", populated_proc.root)

    mock_resolve.assert_called_once_with("postgres")
    mock_collect.assert_called_once_with(70, populated_proc.root)
    assert report.mode == "user"
    assert report.target == "postgres"
    assert [entry.pid for entry in report.entries] == [1, 300]
    assert report.entries[1].evaluation.severity_of(Dimension.THREADS) is Severity.WARNING


@patch('plafond.inspector.collect_pids_for_uid', return_value=[])
@patch('plafond.inspector.resolve_uid', return_value=4242)
def test_inspect_user_without_processes(mock_resolve, mock_collect, populated_proc):
    report = inspector.inspect_user("nobody", populated_proc.root)
    assert report.entries == []
    assert report.errors == []


@patch('plafond.inspector.resolve_uid', side_effect=IdentityResolutionFailed("ghost", "user not found"))
def test_inspect_user_unknown_user_propagates(mock_resolve, populated_proc):
    with pytest.raises(IdentityResolutionFailed):
        inspector.inspect_user("ghost", populated_proc.root)


@patch('plafond.inspector.get_system_wide_usage')
def test_include_system_usage(mock_usage, populated_proc):
    mock_usage.return_value = SystemResourceUsage(mem_percent=42.0)
    report = inspector.inspect_pids([1], populated_proc.root, include_system=True)
    assert report.system_usage.mem_percent == 42.0
    assert report.errors == []


@patch('plafond.inspector.get_system_wide_usage')
def test_system_usage_error_is_recorded(mock_usage, populated_proc):
    mock_usage.return_value = SystemResourceUsage(error="psutil error: nope")
    report = inspector.inspect_pids([1], populated_proc.root, include_system=True)
    assert report.errors == ["System usage: psutil error: nope"]
