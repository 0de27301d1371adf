"""Sequential case execution.

Cases share one reporting surface (the log, grouped by case), so they run
strictly in catalog order: case k+1 starts only after case k has produced
its status, whether it passed or failed.  Each case is isolated at its thunk
boundary; nothing a case raises can stop the cases after it.

A thunk is an ``async`` callable returning a ``RunStatus``.  Case-level
errors (``CaseError``) a thunk lets escape are converted to a failed status
with that error's kind; any other exception is logged with its traceback
and recorded as an ``internal`` failure.  Every failed case is logged at
ERROR with its full input: by the reporter when one is attached, otherwise
by the runner.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Awaitable, Callable, Sequence

from repair_harness.catalog import TestCase
from repair_harness.errors import CaseError
from repair_harness.logging_config import case_context
from repair_harness.reporter import StatusReporter
from repair_harness.status import RunStatus

logger = logging.getLogger(__name__)

CaseThunk = Callable[[], Awaitable[RunStatus]]
StatusCallback = Callable[[RunStatus], None]


class SequentialRunner:
    """Run case thunks one at a time, in order.

    Parameters
    ----------
    reporter : StatusReporter | None
        Receives case starts and statuses as they are produced.
    """

    def __init__(self, reporter: StatusReporter | None = None) -> None:
        self.reporter = reporter

    async def run(
        self,
        entries: Sequence[tuple[TestCase, CaseThunk]],
        on_status: StatusCallback | None = None,
    ) -> list[RunStatus]:
        """Execute every thunk in order and return their statuses.

        Parameters
        ----------
        entries : Sequence[tuple[TestCase, CaseThunk]]
            Cases paired with the thunk that executes them.
        on_status : StatusCallback | None
            Called with each status as soon as it is available, in order.

        Returns
        -------
        list[RunStatus]
            ``result[i]`` is the status of ``entries[i]``.
        """
        statuses: list[RunStatus] = []
        for case, thunk in entries:
            with case_context(case.case_id):
                if self.reporter is not None:
                    self.reporter.case_started(case)
                status = await self._settle(case, thunk)
                if self.reporter is not None:
                    self.reporter.record(status, case)
                elif not status.success:
                    logger.error(
                        "Case %r failed [%s]: %s | input=%s",
                        case.case_id, status.error, status.message, case.describe(),
                    )
            statuses.append(status)
            if on_status is not None:
                try:
                    on_status(status)
                except Exception as exc:  # noqa: BLE001
                    logger.error("Status callback error for %r: %s", case.case_id, exc)
        if self.reporter is not None:
            self.reporter.finish_run()
        return statuses

    async def _settle(self, case: TestCase, thunk: CaseThunk) -> RunStatus:
        try:
            status = await thunk()
        except CaseError as exc:
            return RunStatus.failed(case.case_id, exc.kind, str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error in case %r, input=%s", case.case_id, case.describe())
            return RunStatus.failed(case.case_id, "internal", f"{type(exc).__name__}: {exc}")
        if status.case_id != case.case_id:
            logger.warning(
                "Thunk for %r reported case id %r; keeping catalog id",
                case.case_id, status.case_id,
            )
            status = replace(status, case_id=case.case_id)
        return status
