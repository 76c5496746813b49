"""Concurrent fetch-and-dump orchestration.

Three independent jobs (agents, departments, tags) run side by side. Each one
fetches a top-level list, writes it, then fans out one sub-task per list item:

- sub-tasks are launched in list order with a fixed pause between launches;
  launched ones keep running while the launcher sleeps;
- a sub-task never raises: fetch and write failures are logged with the item
  id/name and come back as a failed ``SubTaskOutcome``;
- a job only fails when its list phase (or its own bookkeeping writes) fails,
  and that never cancels the other jobs.

Tags with no members and ``errcode == 0`` produce no member file; they are
queued and written once to ``tags/_empty.txt`` after the fan-out.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Sequence, TypeVar

from adapters.json_exporter import JsonSink, member_filename
from core.domain.models import AgentBasic, ApiResponse, Department, Tag
from core.errors import DumperError
from core.interfaces.directory import DirectoryAPI

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")

AGENTS = "agents"
DEPARTMENTS = "departments"
TAGS = "tags"

EMPTY_TAGS_FILE = "tags/_empty.txt"


@dataclass(frozen=True)
class DumpOptions:
    """Parameters that control the dump."""

    recursive: bool = False
    delay_ms: int = 200
    agent_details: bool = False

    @property
    def delay_seconds(self) -> float:
        return max(0, self.delay_ms) / 1000


@dataclass
class SubTaskOutcome:
    """Result of one fanned-out item."""

    job: str
    item_id: int
    item_name: str
    path: Path | None = None
    error: str | None = None
    empty: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class JobReport:
    name: str
    error: str | None = None
    total: int = 0
    list_path: Path | None = None
    outcomes: list[SubTaskOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def failures(self) -> list[SubTaskOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def written(self) -> list[SubTaskOutcome]:
        return [o for o in self.outcomes if o.path is not None]


@dataclass
class DumpReport:
    jobs: list[JobReport] = field(default_factory=list)

    def job(self, name: str) -> JobReport:
        for report in self.jobs:
            if report.name == name:
                return report
        raise KeyError(name)


@dataclass(frozen=True)
class EmptyTag:
    index: int
    tag: Tag


async def fan_out(
    items: Sequence[ItemT],
    launch: Callable[[ItemT], Awaitable[SubTaskOutcome]],
    *,
    delay: float,
) -> list[SubTaskOutcome]:
    """Start one task per item, pausing ``delay`` seconds between launches.

    The pause is pacing, not a concurrency limit. Outcomes come back in list
    order once every task has finished.
    """

    tasks: list[asyncio.Task[SubTaskOutcome]] = []
    async with asyncio.TaskGroup() as tg:
        for index, item in enumerate(items):
            if index and delay > 0:
                await asyncio.sleep(delay)
            tasks.append(tg.create_task(launch(item)))
    return [task.result() for task in tasks]


class Dispatcher:
    def __init__(
        self,
        client: DirectoryAPI,
        sink: JsonSink,
        options: DumpOptions | None = None,
    ) -> None:
        self._client = client
        self._sink = sink
        self._options = options or DumpOptions()

    async def run(self) -> DumpReport:
        jobs = (
            (AGENTS, self.agents_job),
            (DEPARTMENTS, self.departments_job),
            (TAGS, self.tags_job),
        )
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(self._run_job(name, job)) for name, job in jobs]
        return DumpReport(jobs=[task.result() for task in tasks])

    async def _run_job(
        self,
        name: str,
        job: Callable[[JobReport], Awaitable[None]],
    ) -> JobReport:
        report = JobReport(name=name)
        try:
            await job(report)
        except DumperError as exc:
            report.error = str(exc)
            logger.error("Fetch %s job failed: %s", name, exc)
        except Exception as exc:
            report.error = repr(exc)
            logger.exception("Fetch %s job crashed", name)
        else:
            logger.info(
                "Fetch %s job finished: %d items, %d failed",
                name,
                report.total,
                len(report.failures),
            )
        return report

    # -- jobs -----------------------------------------------------------------

    async def agents_job(self, report: JobReport) -> None:
        resp = await self._client.list_agents()
        report.total = len(resp.agents)
        logger.info("Agents: %s", ", ".join(f"{a.id} - {a.name}" for a in resp.agents))
        report.list_path = self._sink.write_json("agents.json", resp)

        if not self._options.agent_details:
            return

        self._sink.ensure_dir(AGENTS)
        report.outcomes = await fan_out(
            resp.agents,
            self._agent_detail,
            delay=self._options.delay_seconds,
        )

    async def departments_job(self, report: JobReport) -> None:
        resp = await self._client.list_departments()
        report.total = len(resp.departments)
        logger.info("Total %d departments to query", report.total)
        report.list_path = self._sink.write_json("departments.json", resp)

        self._sink.ensure_dir(DEPARTMENTS)
        report.outcomes = await fan_out(
            resp.departments,
            self._department_members,
            delay=self._options.delay_seconds,
        )

    async def tags_job(self, report: JobReport) -> None:
        resp = await self._client.list_tags()
        report.total = len(resp.tags)
        logger.info("Total %d tags to query", report.total)
        report.list_path = self._sink.write_json("tags.json", resp)

        self._sink.ensure_dir(TAGS)
        empty_tags: asyncio.Queue[EmptyTag] = asyncio.Queue()

        async def launch(entry: tuple[int, Tag]) -> SubTaskOutcome:
            index, tag = entry
            return await self._tag_members(tag, index, empty_tags)

        report.outcomes = await fan_out(
            list(enumerate(resp.tags)),
            launch,
            delay=self._options.delay_seconds,
        )

        drained: list[EmptyTag] = []
        while not empty_tags.empty():
            drained.append(empty_tags.get_nowait())
        drained.sort(key=lambda entry: entry.index)
        text = "".join(f"{entry.tag.id} - {entry.tag.name}\n" for entry in drained)
        self._sink.write_text(EMPTY_TAGS_FILE, text)
        logger.info("%d tags have no member, listed in %s", len(drained), EMPTY_TAGS_FILE)

    # -- sub-tasks ------------------------------------------------------------

    async def _agent_detail(self, agent: AgentBasic) -> SubTaskOutcome:
        outcome = SubTaskOutcome(job=AGENTS, item_id=agent.id, item_name=agent.name)
        resp = await self._fetch(outcome, lambda: self._client.get_agent_detail(agent.id))
        if resp is not None:
            self._save(outcome, f"{AGENTS}/{member_filename(agent.id, agent.name, prefix='detail')}", resp)
        return outcome

    async def _department_members(self, department: Department) -> SubTaskOutcome:
        outcome = SubTaskOutcome(job=DEPARTMENTS, item_id=department.id, item_name=department.name)
        resp = await self._fetch(
            outcome,
            lambda: self._client.get_department_members(department.id, self._options.recursive),
        )
        if resp is not None:
            self._save(
                outcome,
                f"{DEPARTMENTS}/{member_filename(department.id, department.name)}",
                resp,
                count=len(resp.members),
            )
        return outcome

    async def _tag_members(
        self,
        tag: Tag,
        index: int,
        empty_tags: asyncio.Queue[EmptyTag],
    ) -> SubTaskOutcome:
        outcome = SubTaskOutcome(job=TAGS, item_id=tag.id, item_name=tag.name)
        resp = await self._fetch(outcome, lambda: self._client.get_tag_members(tag.id))
        if resp is None:
            return outcome

        if not resp.members and resp.code == 0:
            outcome.empty = True
            empty_tags.put_nowait(EmptyTag(index=index, tag=tag))
            return outcome

        self._save(
            outcome,
            f"{TAGS}/{member_filename(tag.id, tag.name)}",
            resp,
            count=len(resp.members),
        )
        return outcome

    async def _fetch(
        self,
        outcome: SubTaskOutcome,
        fetch: Callable[[], Awaitable[ApiResponse]],
    ) -> ApiResponse | None:
        try:
            resp = await fetch()
        except DumperError as exc:
            outcome.error = str(exc)
            logger.error(
                "Failed to fetch %s item %s - %s: %s",
                outcome.job,
                outcome.item_id,
                outcome.item_name,
                exc,
            )
            return None
        except Exception as exc:
            outcome.error = repr(exc)
            logger.exception(
                "Unexpected error fetching %s item %s - %s",
                outcome.job,
                outcome.item_id,
                outcome.item_name,
            )
            return None

        # Error payloads are still saved; only flag them.
        if resp.code not in (None, 0):
            logger.warning(
                "%s item %s - %s returned errcode=%s errmsg=%s",
                outcome.job,
                outcome.item_id,
                outcome.item_name,
                resp.code,
                resp.msg,
            )
        return resp

    def _save(
        self,
        outcome: SubTaskOutcome,
        relative_name: str,
        payload: ApiResponse,
        *,
        count: int | None = None,
    ) -> None:
        try:
            outcome.path = self._sink.write_json(relative_name, payload)
        except DumperError as exc:
            outcome.error = str(exc)
            logger.error(
                "Failed to save %s item %s - %s: %s",
                outcome.job,
                outcome.item_id,
                outcome.item_name,
                exc,
            )
            return

        if count is None:
            logger.info("Saved %s", outcome.path)
        else:
            logger.info("Saved %s, total %d", outcome.path, count)


async def dump_directory(
    client: DirectoryAPI,
    sink: JsonSink,
    options: DumpOptions | None = None,
) -> DumpReport:
    """Run the agents, departments and tags jobs concurrently."""

    return await Dispatcher(client, sink, options).run()
