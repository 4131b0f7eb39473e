"""
Draft Sync Engine
=================
Keeps a per-user local draft of a case's application usable while the
server copy stays authoritative.

    LOCAL_ONLY ──provision()──► CREATING ──► BOUND
        ▲                            │
        └────── create failed ───────┘        (never CREATING again)

* Opening a case id always pulls the server copy and overwrites the local draft.
* Edits on a bound case are pushed after a debounce window, one push at a time.
  Only the sections touched since the last successful push are sent.
* Read-only grants refuse edits with a view-only notice.
* A failed push keeps the draft and the dirty sections; the next edit retries.
* ``close()`` cancels a pending pull but lets an in-flight create or push finish.

Usage:
    async with SessionContext.open(user_id, token, sync_settings) as context:
        engine = DraftSyncEngine(context, case_id=shared_case_id)
        await engine.mount()
        engine.update_section("victim", {"firstName": "Ada"})
        ...
        await engine.close()
"""
from __future__ import annotations

import asyncio
import copy
import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

import httpx
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.client import intake_steps
from app.client.api_client import CaseApiClient
from app.client.errors import Forbidden, NotFound, SyncError
from app.client.local_store import LocalDraftStore
from app.core.application import APPLICATION_SECTIONS, empty_application

logger = logging.getLogger(__name__)


class SyncSettings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8000/api/v1"
    DEBOUNCE_SECONDS: float = 0.8
    STORAGE_DIR: str = "~/.cvc_intake"
    REQUEST_TIMEOUT: float = 15.0
    DEFAULT_STATE_CODE: str = "IL"

    model_config = SettingsConfigDict(
        env_prefix="CVC_SYNC_",
        env_file=".env",
        extra="ignore",
    )


class SyncState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LOCAL_ONLY = "local_only"
    CREATING = "creating"
    BOUND = "bound"
    UNAVAILABLE = "unavailable"


_TRANSITIONS = {
    SyncState.UNINITIALIZED: {SyncState.LOADING},
    SyncState.LOADING: {SyncState.BOUND, SyncState.LOCAL_ONLY, SyncState.UNAVAILABLE},
    SyncState.LOCAL_ONLY: {SyncState.CREATING},
    SyncState.CREATING: {SyncState.BOUND, SyncState.LOCAL_ONLY},
    SyncState.BOUND: set(),
    SyncState.UNAVAILABLE: set(),
}


class Provisioning(enum.IntEnum):
    """Only ever moves forward."""
    NOT_STARTED = 0
    IN_FLIGHT = 1
    SETTLED = 2


class SyncStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    kind: str  # "info" | "error" | "read_only"
    message: str
    dismissible: bool = True


READ_ONLY_NOTICE = Notice(
    "read_only",
    "You have view-only access to this case. Ask the owner for edit access to make changes.",
    dismissible=False,
)


@dataclass
class SessionContext:
    """Everything the engine needs about the signed-in user, passed explicitly."""
    user_id: str
    api: CaseApiClient
    store: LocalDraftStore

    def __post_init__(self):
        if self.store.user_id != str(self.user_id):
            raise ValueError("Local store belongs to a different user")

    @classmethod
    def open(
        cls,
        user_id: str,
        token: str,
        settings: Optional[SyncSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SessionContext":
        settings = settings or SyncSettings()
        api = CaseApiClient(settings.API_BASE_URL, token, timeout=settings.REQUEST_TIMEOUT, transport=transport)
        return cls(user_id=str(user_id), api=api, store=LocalDraftStore(settings.STORAGE_DIR, str(user_id)))

    async def __aenter__(self) -> "SessionContext":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the HTTP connection pool at sign-out."""
        await self.api.aclose()


class DraftSyncEngine:

    def __init__(
        self,
        context: SessionContext,
        case_id: Optional[str] = None,
        settings: Optional[SyncSettings] = None,
        auto_provision: bool = True,
        resume_active: bool = True,
    ):
        self.context = context
        self.settings = settings or SyncSettings()
        self._requested_case_id = str(case_id) if case_id else None
        self._auto_provision = auto_provision
        self._resume_active = resume_active

        self.state = SyncState.UNINITIALIZED
        self.provisioning = Provisioning.NOT_STARTED
        self.status = SyncStatus.IDLE
        self.notices: List[Notice] = []

        self.case_id: Optional[str] = None
        self.case: Optional[Dict[str, Any]] = None
        self.access: Optional[Dict[str, Any]] = None

        self.step = intake_steps.INTAKE_STEPS[0]
        self.max_step_index = 0

        self._application: Dict[str, Any] = {}
        self._dirty: Set[str] = set()
        self._pull_task: Optional[asyncio.Future] = None
        self._provision_task: Optional[asyncio.Task] = None
        self._debounce_task: Optional[asyncio.Task] = None
        self._push_task: Optional[asyncio.Task] = None
        self._push_requested = False
        self._closed = False
        self._eligibility_prompt_dismissed = False
        # replayed by the server if the create request is retried
        self._provision_key = str(uuid.uuid4())

    # ── read-only views ──────────────────────────────────────────────────────

    @property
    def application(self) -> Dict[str, Any]:
        return copy.deepcopy(self._application)

    @property
    def read_only(self) -> bool:
        return self.access is not None and not self.access.get("can_edit", False)

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._dirty)

    @property
    def needs_eligibility_prompt(self) -> bool:
        """One-time "run the check or continue" prompt; UI state only."""
        return (
            self.state is SyncState.BOUND
            and self.case is not None
            and self.case.get("eligibility_result") is None
            and not self._eligibility_prompt_dismissed
        )

    def dismiss_eligibility_prompt(self) -> None:
        self._eligibility_prompt_dismissed = True

    # ── state machine ────────────────────────────────────────────────────────

    def _transition(self, new: SyncState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal sync transition {self.state.value} -> {new.value}")
        logger.debug("draft sync %s -> %s (user=%s)", self.state.value, new.value, self.context.user_id)
        self.state = new

    def _advance_provisioning(self, to: Provisioning) -> None:
        if to <= self.provisioning:
            raise RuntimeError(f"Provisioning cannot go from {self.provisioning.name} to {to.name}")
        self.provisioning = to

    def _notify(self, notice: Notice) -> None:
        if notice not in self.notices:
            self.notices.append(notice)

    def dismiss_notice(self, notice: Notice) -> bool:
        if notice.dismissible and notice in self.notices:
            self.notices.remove(notice)
            return True
        return False

    # ── mount / open ─────────────────────────────────────────────────────────

    async def mount(self) -> None:
        self._transition(SyncState.LOADING)
        self.status = SyncStatus.LOADING

        case_id = self._requested_case_id
        from_pointer = False
        if case_id is None and self._resume_active:
            case_id = self.context.store.get_active_case()
            from_pointer = case_id is not None

        if case_id is not None:
            handled = await self._open_case(case_id, from_pointer)
            if handled:
                return

        if self._closed:
            return
        self._start_local()
        if self._auto_provision:
            await self.provision()

    async def _open_case(self, case_id: str, from_pointer: bool) -> bool:
        """
        Pull-on-open. Returns False only when a stale active-case pointer
        should fall back to a local draft.
        """
        self._pull_task = asyncio.ensure_future(self.context.api.get_case(case_id))
        try:
            case, access = await self._pull_task
        except asyncio.CancelledError:
            if self._closed:
                logger.info("Pull of case %s cancelled by close()", case_id)
                return True
            raise
        except (NotFound, Forbidden) as exc:
            if from_pointer:
                logger.info("Active case %s no longer available (%s); starting fresh", case_id, exc.message)
                self.context.store.clear_active_case()
                return False
            self._fail_open(exc)
            return True
        except SyncError as exc:
            self._fail_open(exc)
            return True
        finally:
            self._pull_task = None

        if self._closed:
            # result arrived after close(); discard it
            return True

        self._application = copy.deepcopy(case.get("application") or {})
        self._bind(case, access)
        self.context.store.save_draft(self.case_id, self._application)
        self.context.store.set_active_case(self.case_id)
        self.status = SyncStatus.IDLE
        if self.read_only:
            self._notify(READ_ONLY_NOTICE)
        return True

    def _fail_open(self, exc: SyncError) -> None:
        if isinstance(exc, Forbidden):
            message = "This case has not been shared with you."
        elif isinstance(exc, NotFound):
            message = "This case does not exist."
        else:
            message = f"Could not load the case: {exc.message}"
        logger.warning("Opening case failed for user %s: %s", self.context.user_id, exc.message)
        self._transition(SyncState.UNAVAILABLE)
        self.status = SyncStatus.ERROR
        self._notify(Notice("error", message))

    def _start_local(self) -> None:
        draft = self.context.store.load_draft(None)
        self._application = draft if draft is not None else empty_application(self.settings.DEFAULT_STATE_CODE)
        self.context.store.save_draft(None, self._application)
        self._transition(SyncState.LOCAL_ONLY)
        self._restore_progress(None)
        self.status = SyncStatus.IDLE

    def _bind(self, case: Dict[str, Any], access: Dict[str, Any]) -> None:
        self.case = case
        self.case_id = str(case["id"])
        self.access = access
        self._transition(SyncState.BOUND)
        self._restore_progress(self.case_id)

    # ── provisioning ─────────────────────────────────────────────────────────

    async def provision(self) -> bool:
        """Create the server case for the local draft. At most once per engine."""
        if self._closed or self.state is not SyncState.LOCAL_ONLY:
            return False
        if self.provisioning is not Provisioning.NOT_STARTED:
            return False

        self._advance_provisioning(Provisioning.IN_FLIGHT)
        self._transition(SyncState.CREATING)
        self._provision_task = asyncio.get_running_loop().create_task(self._create_case())
        # shared with close()
        return await asyncio.shield(self._provision_task)

    async def _create_case(self) -> bool:
        self.status = SyncStatus.SAVING
        snapshot = self.application
        # the create carries every section edited so far
        self._dirty.clear()

        try:
            case, access = await self.context.api.create_case(
                snapshot,
                state_code=self.settings.DEFAULT_STATE_CODE,
                idempotency_key=self._provision_key,
            )
        except SyncError as exc:
            self._advance_provisioning(Provisioning.SETTLED)
            self._transition(SyncState.LOCAL_ONLY)
            self._dirty.update(snapshot)
            self.status = SyncStatus.ERROR
            self._notify(Notice("error", f"Could not create your case: {exc.message}"))
            logger.warning("Case provisioning failed for user %s: %s", self.context.user_id, exc.message)
            return False

        self._advance_provisioning(Provisioning.SETTLED)
        self._bind(case, access)
        self.context.store.set_active_case(self.case_id)
        self.context.store.save_draft(self.case_id, self._application)
        self.context.store.clear_draft(None)
        self._save_progress()
        self.status = SyncStatus.SAVED
        logger.info("Provisioned case %s for user %s", self.case_id, self.context.user_id)

        if self._dirty:
            # edits made while the create was in flight
            if self._closed:
                self._start_push()
            else:
                self._schedule_push()
        return True

    # ── local edits ──────────────────────────────────────────────────────────

    def _can_mutate(self) -> bool:
        if self._closed or self.state not in (SyncState.LOCAL_ONLY, SyncState.CREATING, SyncState.BOUND):
            return False
        if self.read_only:
            self._notify(READ_ONLY_NOTICE)
            return False
        return True

    def update_section(self, section: str, values: Dict[str, Any]) -> bool:
        """Merge ``values`` into one section. Returns False when the edit was refused."""
        if section not in APPLICATION_SECTIONS:
            raise ValueError(f"Unknown application section: {section}")
        if not self._can_mutate():
            return False
        merged = dict(self._application.get(section) or {})
        merged.update(copy.deepcopy(values))
        self._application[section] = merged
        self._after_change([section])
        return True

    def set_application(self, application: Dict[str, Any]) -> bool:
        unknown = set(application) - set(APPLICATION_SECTIONS)
        if unknown:
            raise ValueError(f"Unknown application sections: {sorted(unknown)}")
        if not self._can_mutate():
            return False
        self._application = copy.deepcopy(application)
        self._after_change(self._application)
        return True

    def _after_change(self, sections: Iterable[str]) -> None:
        self._dirty.update(sections)
        slot = self.case_id if self.state is SyncState.BOUND else None
        self.context.store.save_draft(slot, self._application)
        if self.state is SyncState.BOUND:
            self._schedule_push()

    # ── push ─────────────────────────────────────────────────────────────────

    def _schedule_push(self) -> None:
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounce())

    async def _debounce(self) -> None:
        await asyncio.sleep(self.settings.DEBOUNCE_SECONDS)
        self._debounce_task = None
        self._start_push()

    def _start_push(self) -> None:
        if self._push_task is not None and not self._push_task.done():
            self._push_requested = True
            return
        self._push_task = asyncio.get_running_loop().create_task(self._push_loop())

    async def _push_loop(self) -> None:
        while True:
            self._push_requested = False
            if not self._dirty:
                return

            sections = set(self._dirty)
            payload = {name: copy.deepcopy(self._application.get(name) or {}) for name in sections}
            self._dirty -= sections
            self.status = SyncStatus.SAVING

            try:
                self.case = await self.context.api.patch_case(self.case_id, {"application": payload})
                self.status = SyncStatus.SAVED
            except SyncError as exc:
                self._dirty |= sections
                self.status = SyncStatus.ERROR
                logger.warning("Autosave of case %s failed: %s", self.case_id, exc.message)
                if isinstance(exc, Forbidden):
                    # edit access was revoked on the server
                    self.access = dict(self.access or {}, can_edit=False)
                    self._notify(READ_ONLY_NOTICE)
                    return
                self._notify(Notice(
                    "error",
                    f"Couldn't save your latest changes ({exc.message}). They are kept on this device.",
                ))

            if not self._push_requested:
                return

    async def flush(self) -> None:
        """Push pending edits now and wait for the in-flight push."""
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
            self._debounce_task = None
            if self.state is SyncState.BOUND:
                self._start_push()
        if self._push_task is not None and not self._push_task.done():
            await asyncio.shield(self._push_task)

    async def close(self) -> None:
        """Unmount. Pending pulls are cancelled; creates and pushes are allowed to finish."""
        if self._closed:
            return
        self._closed = True
        if self._pull_task is not None and not self._pull_task.done():
            self._pull_task.cancel()
        if self._provision_task is not None and not self._provision_task.done():
            await asyncio.shield(self._provision_task)
        await self.flush()
        if self.state in (SyncState.LOCAL_ONLY, SyncState.BOUND):
            self._save_progress()

    # ── eligibility ──────────────────────────────────────────────────────────

    async def save_eligibility(self, answers: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Submit the pre-check; returns the outcome or None when refused or failed."""
        if self.state is not SyncState.BOUND or not self._can_mutate():
            return None
        try:
            case, outcome = await self.context.api.submit_eligibility(self.case_id, answers)
        except SyncError as exc:
            self.status = SyncStatus.ERROR
            self._notify(Notice("error", f"Could not save the eligibility check: {exc.message}"))
            return None
        self.case = case
        self._eligibility_prompt_dismissed = True
        return outcome

    # ── step cursor ──────────────────────────────────────────────────────────

    def _restore_progress(self, case_id: Optional[str]) -> None:
        progress = self.context.store.load_progress()
        if not progress or progress.get("caseId") != case_id:
            return
        step = progress.get("step")
        if step in intake_steps.INTAKE_STEPS:
            self.step = step
        max_index = progress.get("maxStepIndex")
        if isinstance(max_index, int):
            self.max_step_index = max(0, min(max_index, len(intake_steps.INTAKE_STEPS) - 1))

    def _save_progress(self) -> None:
        self.context.store.save_progress(self.case_id, self.step, self.max_step_index)

    def go_to_step(self, step: str) -> bool:
        """Jump to a step already reached."""
        if intake_steps.step_index(step) > self.max_step_index:
            return False
        self.step = step
        self._save_progress()
        return True

    def advance(self) -> List[str]:
        """Move to the next step if the current one is complete; returns blocking fields."""
        missing = intake_steps.missing_fields(self.step, self._application)
        if missing:
            return missing

        if self.step == "applicant":
            applicant = intake_steps.applicant_from_victim(self._application)
            if applicant is not None and applicant != self._application.get("applicant"):
                self.update_section("applicant", applicant)

        nxt = intake_steps.next_step(self.step)
        if nxt is not None:
            self.step = nxt
            self.max_step_index = max(self.max_step_index, intake_steps.step_index(nxt))
            self._save_progress()
        return []

    def back(self) -> None:
        idx = intake_steps.step_index(self.step)
        if idx > 0:
            self.step = intake_steps.INTAKE_STEPS[idx - 1]
            self._save_progress()
