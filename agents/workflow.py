"""Garment workflow state machine: Input -> Generating -> Preview -> Applying -> Complete.

Each session is driven by one caller at a time. ``Generating`` and
``Applying`` are transient: a failure in either returns control to the
previous interactive step (``Input`` or ``Preview``) with the error attached,
so the user's request text and, after generation, the garment survive.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import Callable, Dict, Iterator, List, Optional, Set

from agents.mutation_budget import MutationBudgetTracker
from logic.garment_validator import GarmentValidator
from logic.prompt_composer import PromptComposer
from logic.validation import parse_outfit_request
from models.errors import (
    GarmentStudioError,
    InvalidTransitionError,
    ValidationError,
    WorkflowBusyError,
)
from models.garment import (
    Composited,
    Failed,
    FallbackGarmentOnly,
    GarmentAsset,
    OutfitRequest,
    WorkflowSession,
    WorkflowStep,
)
from studio_app.logging_config import get_logger, log_event
from tools.image_generation import GarmentImageClient
from tools.tryon import TryOnClient

LOGGER = get_logger(__name__)

ProgressObserver = Callable[[WorkflowSession, int, str], None]

PROGRESS_SUBMITTED = 10
PROGRESS_GENERATING = 25
PROGRESS_VALIDATING = 45
PROGRESS_PREVIEW = 50
PROGRESS_APPLYING = 75
PROGRESS_COMPLETE = 100


class WorkflowStateMachine:
    """Sequences prompt composition, generation, validation and try-on for a session."""

    def __init__(
        self,
        composer: PromptComposer,
        image_client: GarmentImageClient,
        validator: GarmentValidator,
        tryon_client: TryOnClient,
        budget: MutationBudgetTracker,
        observers: Optional[List[ProgressObserver]] = None,
    ) -> None:
        self.composer = composer
        self.image_client = image_client
        self.validator = validator
        self.tryon_client = tryon_client
        self.budget = budget
        self.observers: List[ProgressObserver] = list(observers or [])
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._cancelled: Set[str] = set()
        self._in_flight: Set[str] = set()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def add_observer(self, observer: ProgressObserver) -> None:
        self.observers.append(observer)

    @contextlib.contextmanager
    def _exclusive(self, session: WorkflowSession) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(session.session_id, threading.Lock())
        if not lock.acquire(blocking=False):
            raise WorkflowBusyError()
        try:
            yield
        finally:
            lock.release()

    def _emit(self, session: WorkflowSession, progress: int, message: str) -> None:
        session.progress = progress
        session.status_message = message
        for observer in list(self.observers):
            try:
                observer(session, progress, message)
            except Exception:
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "progress_observer_failed",
                    session_id=session.session_id,
                    progress=progress,
                    exc_info=True,
                )

    def _move(self, session: WorkflowSession, step: WorkflowStep, event: str) -> None:
        previous = session.step
        session.step = step
        session.history.append({"from": previous.value, "to": step.value, "event": event, "at": time.time()})
        log_event(
            LOGGER,
            logging.INFO,
            "workflow_transition",
            session_id=session.session_id,
            from_step=previous.value,
            to_step=step.value,
            transition=event,
        )

    def _require(self, session: WorkflowSession, *steps: WorkflowStep) -> None:
        if session.step not in steps:
            allowed = ", ".join(step.value for step in steps)
            raise InvalidTransitionError(f"Cannot do that while {session.step.value}; expected {allowed}.")

    def _fail(
        self,
        session: WorkflowSession,
        step: WorkflowStep,
        error: GarmentStudioError | str,
        retryable: bool = False,
    ) -> None:
        session.last_error = error.user_message if isinstance(error, GarmentStudioError) else error
        session.last_error_retryable = retryable
        self._move(session, step, "error")
        session.progress = 0 if step == WorkflowStep.INPUT else PROGRESS_PREVIEW
        session.status_message = session.last_error

    @contextlib.contextmanager
    def _call(self, session: WorkflowSession, fallback_step: WorkflowStep) -> Iterator[None]:
        with self._guard:
            self._cancelled.discard(session.session_id)
            self._in_flight.add(session.session_id)
        try:
            yield
        except GarmentStudioError:
            raise
        except Exception:
            self._fail(session, fallback_step, GarmentStudioError())
            raise
        finally:
            with self._guard:
                self._in_flight.discard(session.session_id)

    def _still_wanted(self, session: WorkflowSession) -> Callable[[], bool]:
        def check() -> bool:
            with self._guard:
                return session.session_id not in self._cancelled

        return check

    def _take_cancel(self, session: WorkflowSession) -> bool:
        with self._guard:
            if session.session_id in self._cancelled:
                self._cancelled.discard(session.session_id)
                return True
        return False

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def submit(self, session: WorkflowSession, request: OutfitRequest | dict) -> WorkflowSession:
        """Input -> Generating -> Preview. Invalid input raises and leaves the session untouched."""

        with self._exclusive(session):
            self._require(session, WorkflowStep.INPUT)
            outfit_request = parse_outfit_request(request)
            session.request = outfit_request
            session.prompt = None
            session.asset = None
            session.tryon_result = None
            session.last_error = None
            session.last_error_retryable = False
            self._move(session, WorkflowStep.GENERATING, "submit")
            self._emit(session, PROGRESS_SUBMITTED, "Preparing your garment request")
            session.prompt = self.composer.compose(outfit_request)
            self._generate(session)
        return session

    def _generate(self, session: WorkflowSession) -> None:
        assert session.prompt is not None
        self._emit(session, PROGRESS_GENERATING, "Generating garment image")
        try:
            with self._call(session, WorkflowStep.INPUT):
                image_ref = self.image_client.generate(
                    session.prompt, should_continue=self._still_wanted(session)
                )
        except GarmentStudioError as exc:
            if self._take_cancel(session):
                self._cancelled_to(session, WorkflowStep.INPUT)
                return
            self._fail(session, WorkflowStep.INPUT, exc, retryable=exc.retryable)
            return

        if self._take_cancel(session):
            self._cancelled_to(session, WorkflowStep.INPUT)
            return

        self._emit(session, PROGRESS_VALIDATING, "Checking garment quality")
        asset = GarmentAsset(image_ref=image_ref, prompt=session.prompt)
        asset.validation = self.validator.validate(asset, session.prompt.subject)
        if not asset.validation.is_valid:
            issues = "; ".join(asset.validation.issues)
            session.prompt = None
            error = ValidationError(f"Generated garment is not suitable for try-on: {issues}")
            self._fail(session, WorkflowStep.INPUT, error)
            return

        session.asset = asset
        self._move(session, WorkflowStep.PREVIEW, "garment_ready")
        self._emit(session, PROGRESS_PREVIEW, "Garment ready for preview")

    def accept(self, session: WorkflowSession) -> WorkflowSession:
        """Preview -> Applying -> Complete, or back to Preview with the garment kept."""

        with self._exclusive(session):
            self._require(session, WorkflowStep.PREVIEW)
            self._apply(session)
        return session

    def _apply(self, session: WorkflowSession) -> None:
        assert session.asset is not None and session.request is not None
        avatar_image = self.budget.current_image(session.avatar_id) if session.avatar_id else None
        if not avatar_image:
            raise ValidationError("Add an avatar photo before applying a garment.")

        session.last_error = None
        session.last_error_retryable = False
        self._move(session, WorkflowStep.APPLYING, "accept")
        self._emit(session, PROGRESS_APPLYING, "Applying garment to your avatar")
        with self._call(session, WorkflowStep.PREVIEW):
            result = self.tryon_client.apply(
                avatar_image,
                session.asset.image_ref,
                session.request.description,
                should_continue=self._still_wanted(session),
            )

        if self._take_cancel(session):
            self._cancelled_to(session, WorkflowStep.PREVIEW)
            return

        session.tryon_result = result
        if isinstance(result, Failed):
            self._fail(session, WorkflowStep.PREVIEW, result.reason, retryable=result.retryable)
            return

        if isinstance(result, Composited) and session.avatar_id:
            self.budget.record_change(session.avatar_id, result.image_url)

        self._move(session, WorkflowStep.COMPLETE, "applied")
        if isinstance(result, FallbackGarmentOnly):
            self._emit(session, PROGRESS_COMPLETE, "Try-on unavailable; showing the garment on its own")
        else:
            self._emit(session, PROGRESS_COMPLETE, "Outfit applied")

    def decline(self, session: WorkflowSession) -> WorkflowSession:
        """Preview -> Input. Derived state is cleared; the request text is kept for editing."""

        with self._exclusive(session):
            self._require(session, WorkflowStep.PREVIEW)
            self._reset_derived(session)
            self._move(session, WorkflowStep.INPUT, "decline")
            session.progress = 0
            session.status_message = "Edit your request and try again"
        return session

    def retry(self, session: WorkflowSession) -> WorkflowSession:
        """Re-enter the step that failed with the same prompt or garment."""

        with self._exclusive(session):
            if session.step == WorkflowStep.INPUT and session.prompt is not None and session.last_error_retryable:
                session.last_error = None
                session.last_error_retryable = False
                self._move(session, WorkflowStep.GENERATING, "retry")
                self._generate(session)
                return session
            if session.step == WorkflowStep.PREVIEW and session.asset is not None and session.last_error:
                self._apply(session)
                return session
            raise InvalidTransitionError("There is nothing to retry.")

    def cancel(self, session: WorkflowSession) -> bool:
        """Flag the in-flight call. Pending retries stop and any late result is discarded."""

        with self._guard:
            if session.session_id not in self._in_flight:
                return False
            self._cancelled.add(session.session_id)
        log_event(LOGGER, logging.INFO, "workflow_cancel_requested", session_id=session.session_id)
        return True

    def _cancelled_to(self, session: WorkflowSession, step: WorkflowStep) -> None:
        if step == WorkflowStep.INPUT:
            session.prompt = None
            session.asset = None
        self._move(session, step, "cancel")
        session.progress = 0 if step == WorkflowStep.INPUT else PROGRESS_PREVIEW
        session.status_message = "Cancelled"

    def start_new(self, session: WorkflowSession) -> WorkflowSession:
        """Complete -> Input, keeping only the request text."""

        with self._exclusive(session):
            self._require(session, WorkflowStep.COMPLETE)
            self._reset_derived(session)
            self._move(session, WorkflowStep.INPUT, "start_new")
            session.progress = 0
            session.status_message = "Ready to start"
        return session

    @staticmethod
    def _reset_derived(session: WorkflowSession) -> None:
        session.prompt = None
        session.asset = None
        session.tryon_result = None
        session.last_error = None
        session.last_error_retryable = False


__all__ = [
    "ProgressObserver",
    "WorkflowStateMachine",
    "PROGRESS_SUBMITTED",
    "PROGRESS_GENERATING",
    "PROGRESS_VALIDATING",
    "PROGRESS_PREVIEW",
    "PROGRESS_APPLYING",
    "PROGRESS_COMPLETE",
]
