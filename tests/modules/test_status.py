# tests/modules/test_status.py
# -*- coding: utf-8 -*-

import pytest

from plafond.datatypes import StatusInfo
from plafond.exceptions import StatusUnreadable
from plafond.modules import status

from conftest import render_status


def test_vm_rss_converted_to_bytes():
    info = status.parse_status_content("VmRSS:\t   2048 kB\n")
    assert info.vm_rss == 2097152


def test_parse_full_status():
    info = status.parse_status_content(
        render_status("nginx", pid=812, ppid=1, uid=33, vm_size_kb=150000, vm_rss_kb=4096, vm_lck_kb=64, threads=5)
    )
    assert info.vm_size == 150000 * 1024
    assert info.vm_rss == 4096 * 1024
    assert info.vm_locked == 64 * 1024
    assert info.thread_count == 5
    assert info.ppid == 1
    assert info.uid == 33
    assert info.state == "S"


def test_missing_keys_are_absent_not_zero():
    # Kernel threads have no Vm* lines at all
    info = status.parse_status_content(
        render_status("kworker/0:1", pid=9, ppid=2, vm_size_kb=None, vm_rss_kb=None, vm_lck_kb=None)
    )
    assert info.vm_size is None
    assert info.vm_rss is None
    assert info.vm_locked is None
    assert info.thread_count == 1


@pytest.mark.parametrize("line, attr", [
    ("VmRSS:\tmany kB", "vm_rss"),
    ("VmSize:\t", "vm_size"),
    ("Threads:\tfour", "thread_count"),
])
def test_malformed_values_are_absent(line, attr, caplog):
    info = status.parse_status_content(line + "\n")
    assert getattr(info, attr) is None
    assert "Could not parse" in caplog.text


@pytest.mark.parametrize("content", ["", None])
def test_parse_empty_status(content):
    assert status.parse_status_content(content) == StatusInfo()


def test_read_status(fake_proc):
    fake_proc.add(321, name="redis-server", ppid=1, threads=4)
    info = status.read_status(321, fake_proc.root)
    assert info.thread_count == 4
    assert info.vm_rss == 2048 * 1024


def test_read_status_unreadable(fake_proc):
    fake_proc.add(321, write_status=False)
    with pytest.raises(StatusUnreadable) as exc_info:
        status.read_status(321, fake_proc.root)
    assert exc_info.value.pid == 321
