"""Tests for the fetch-and-dump orchestration."""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path

import pytest

from adapters.json_exporter import JsonSink
from core.domain.models import AgentBasic, Department, Tag
from core.services.dispatcher import (
    AGENTS,
    DEPARTMENTS,
    TAGS,
    DumpOptions,
    SubTaskOutcome,
    dump_directory,
    fan_out,
)

from conftest import FakeDirectory, tag_members


def departments(n: int) -> list[Department]:
    return [Department(id=i, name=f"Dept {i}", parent_id=1, order=i) for i in range(1, n + 1)]


@pytest.mark.asyncio
async def test_launches_one_subtask_per_department_with_pacing(tmp_path: Path) -> None:
    directory = FakeDirectory(departments=departments(5))
    options = DumpOptions(delay_ms=30)

    report = await dump_directory(directory, JsonSink(tmp_path), options)

    calls = directory.department_calls
    assert [dept_id for dept_id, _, _ in calls] == [1, 2, 3, 4, 5]
    span = calls[-1][2] - calls[0][2]
    # asyncio may wake a timer up to one clock tick early.
    assert span >= 4 * 0.03 * 0.9
    assert len(report.job(DEPARTMENTS).outcomes) == 5


@pytest.mark.asyncio
async def test_delay_paces_launches_without_limiting_concurrency() -> None:
    started: list[float] = []

    async def slow(item: int) -> SubTaskOutcome:
        started.append(time.monotonic())
        await asyncio.sleep(0.2)
        return SubTaskOutcome(job="test", item_id=item, item_name=str(item))

    begin = time.monotonic()
    outcomes = await fan_out([1, 2, 3, 4, 5], slow, delay=0.02)
    elapsed = time.monotonic() - begin

    assert [o.item_id for o in outcomes] == [1, 2, 3, 4, 5]
    assert len(started) == 5
    # Serial execution would take at least 1s.
    assert elapsed < 0.6


@pytest.mark.asyncio
async def test_recursive_flag_is_forwarded(tmp_path: Path) -> None:
    directory = FakeDirectory(departments=departments(2))

    await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0, recursive=True))

    assert all(recursive for _, recursive, _ in directory.department_calls)


@pytest.mark.asyncio
async def test_failing_item_does_not_affect_neighbours(tmp_path: Path) -> None:
    directory = FakeDirectory(departments=departments(3), failing_departments={2})

    report = await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0))

    job = report.job(DEPARTMENTS)
    assert job.succeeded
    assert (tmp_path / "departments" / "members-1-Dept 1.json").exists()
    assert (tmp_path / "departments" / "members-3-Dept 3.json").exists()
    assert not (tmp_path / "departments" / "members-2-Dept 2.json").exists()
    assert [o.item_id for o in job.failures] == [2]
    assert "2" in (job.failures[0].error or "")


@pytest.mark.asyncio
async def test_write_failure_is_isolated(tmp_path: Path) -> None:
    (tmp_path / "departments").mkdir()
    (tmp_path / "departments" / "members-1-Dept 1.json").mkdir()
    directory = FakeDirectory(departments=departments(2))

    report = await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0))

    job = report.job(DEPARTMENTS)
    assert job.succeeded
    assert [o.item_id for o in job.failures] == [1]
    assert (tmp_path / "departments" / "members-2-Dept 2.json").is_file()


@pytest.mark.asyncio
async def test_every_subtask_failing_still_succeeds_the_job(tmp_path: Path) -> None:
    directory = FakeDirectory(departments=departments(3), failing_departments={1, 2, 3})

    report = await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0))

    job = report.job(DEPARTMENTS)
    assert job.succeeded
    assert len(job.failures) == 3
    assert (tmp_path / "departments.json").exists()


@pytest.mark.asyncio
async def test_empty_tags_go_to_empty_txt_only(tmp_path: Path) -> None:
    directory = FakeDirectory(
        tags=[Tag(id=1, name="Managers"), Tag(id=2, name="Nobody"), Tag(id=3, name="Ghosts")],
        tag_members={1: tag_members(1, "alice", "bob")},
    )

    report = await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0))

    tags_dir = tmp_path / "tags"
    assert (tags_dir / "members-1-Managers.json").exists()
    assert not (tags_dir / "members-2-Nobody.json").exists()
    assert not (tags_dir / "members-3-Ghosts.json").exists()

    lines = (tags_dir / "_empty.txt").read_text(encoding="utf-8").splitlines()
    assert lines == ["2 - Nobody", "3 - Ghosts"]
    assert "Managers" not in "\n".join(lines)

    job = report.job(TAGS)
    assert [o.item_id for o in job.outcomes if o.empty] == [2, 3]

    saved = json.loads((tags_dir / "members-1-Managers.json").read_text(encoding="utf-8"))
    assert [u["userid"] for u in saved["userlist"]] == ["alice", "bob"]


@pytest.mark.asyncio
async def test_failing_tag_is_isolated_from_siblings(tmp_path: Path) -> None:
    directory = FakeDirectory(
        tags=[Tag(id=1, name="Managers"), Tag(id=2, name="Broken"), Tag(id=3, name="Nobody")],
        tag_members={1: tag_members(1, "alice")},
        failing_tags={2},
    )

    report = await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0))

    tags_dir = tmp_path / "tags"
    assert (tags_dir / "members-1-Managers.json").exists()
    assert not (tags_dir / "members-2-Broken.json").exists()
    assert (tags_dir / "_empty.txt").read_text(encoding="utf-8") == "3 - Nobody\n"

    job = report.job(TAGS)
    assert job.succeeded
    assert [o.item_id for o in job.failures] == [2]
    assert directory.tag_calls == [1, 2, 3]


@pytest.mark.asyncio
async def test_error_code_payload_is_still_written(tmp_path: Path) -> None:
    directory = FakeDirectory(
        tags=[Tag(id=9, name="Locked")],
        tag_members={9: tag_members(9, code=60011)},
    )

    await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0))

    saved = json.loads((tmp_path / "tags" / "members-9-Locked.json").read_text(encoding="utf-8"))
    assert saved["errcode"] == 60011
    assert (tmp_path / "tags" / "_empty.txt").read_text(encoding="utf-8") == ""


@pytest.mark.asyncio
async def test_failing_job_does_not_cancel_the_others(tmp_path: Path) -> None:
    directory = FakeDirectory(
        departments=departments(2),
        tags=[Tag(id=1, name="Managers")],
        agents=[AgentBasic(id=1000002, name="Portal")],
        failing_lists={"tags"},
    )

    report = await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0))

    assert not report.job(TAGS).succeeded
    assert report.job(DEPARTMENTS).succeeded
    assert report.job(AGENTS).succeeded
    assert not (tmp_path / "tags.json").exists()
    assert not (tmp_path / "tags").exists()
    assert (tmp_path / "agents.json").exists()
    assert len(list((tmp_path / "departments").iterdir())) == 2


@pytest.mark.asyncio
async def test_agents_have_no_fan_out_by_default(tmp_path: Path) -> None:
    directory = FakeDirectory(agents=[AgentBasic(id=1, name="A"), AgentBasic(id=2, name="B")])

    report = await dump_directory(directory, JsonSink(tmp_path), DumpOptions(delay_ms=0))

    assert directory.detail_calls == []
    assert report.job(AGENTS).outcomes == []
    saved = json.loads((tmp_path / "agents.json").read_text(encoding="utf-8"))
    assert [a["agentid"] for a in saved["agentlist"]] == [1, 2]


@pytest.mark.asyncio
async def test_agent_details_opt_in(tmp_path: Path) -> None:
    directory = FakeDirectory(agents=[AgentBasic(id=1, name="A/B"), AgentBasic(id=2, name="C")])

    report = await dump_directory(
        directory, JsonSink(tmp_path), DumpOptions(delay_ms=0, agent_details=True)
    )

    assert directory.detail_calls == [1, 2]
    assert (tmp_path / "agents" / "detail-1-A-B.json").exists()
    assert (tmp_path / "agents" / "detail-2-C.json").exists()
    assert len(report.job(AGENTS).written) == 2
