"""
Single-flight orchestration of the validate -> parse -> split pipeline.

The coordinator owns the shared state store. At most one pipeline runs at a
time; a pipeline that was superseded (by ``request_clear``) keeps running
until its next checkpoint and then discards its results without touching the
store.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, List, Optional

from .config import LARGE_INPUT_THRESHOLD, VALIDATION_DEBOUNCE_SECONDS
from .core import OpenAPISplitter
from .errors import (
    ExportError,
    FragmenterError,
    InputDecodeError,
    InputEmptyError,
    NoChange,
    OperationCanceled,
    YamlSyntaxError,
)
from .fingerprint import ChangeDetector
from .tree import ArchiveBuilder, FileNode, FileTree, export_archive, select_content
from .validator import ValidationState, YamlValidator

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag for one pipeline run."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_canceled(self) -> bool:
        return self._event.is_set()

    def raise_if_canceled(self) -> None:
        """
        Checkpoint.

        Raises:
            OperationCanceled: If the token was canceled
        """
        if self._event.is_set():
            raise OperationCanceled()


@dataclass
class SplitterState:
    """Everything the presentation layer reads."""
    input_text: str = ""
    file_tree: FileTree = field(default_factory=FileTree)
    selected_content: str = ""
    is_processing: bool = False
    error_message: Optional[str] = None
    info_message: Optional[str] = None
    validation: ValidationState = field(default_factory=ValidationState.valid)


StateListener = Callable[[SplitterState], None]


class SplitterStore:
    """
    Process-wide state with single-writer discipline.

    Every mutation goes through a setter that holds the lock, so readers only
    ever see complete states. Listeners get a snapshot after each mutation.
    """

    def __init__(self):
        self._state = SplitterState()
        self._lock = threading.RLock()
        self._listeners: List[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener called with a snapshot after each mutation.

        Returns:
            A function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> SplitterState:
        with self._lock:
            return replace(self._state)

    def _update(self, **changes: Any) -> None:
        with self._lock:
            self._state = replace(self._state, **changes)
            snapshot = replace(self._state)
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)

    def set_input_text(self, text: str) -> None:
        self._update(input_text=text, error_message=None, info_message=None)

    def set_processing(self, is_processing: bool) -> None:
        if is_processing:
            self._update(is_processing=True, error_message=None, info_message=None)
        else:
            self._update(is_processing=False)

    def set_error(self, message: Optional[str]) -> None:
        self._update(error_message=message, is_processing=False)

    def set_info(self, message: Optional[str]) -> None:
        self._update(info_message=message)

    def set_validation(self, validation: ValidationState) -> None:
        self._update(validation=validation)

    def set_selected_content(self, content: str) -> None:
        self._update(selected_content=content)

    def commit_split(
        self,
        tree: FileTree,
        selected_content: str,
        validation: Optional[ValidationState] = None,
    ) -> None:
        """
        Replace the tree and selection and end processing in one mutation.

        ``validation`` is only written when given, so a caller can leave the
        state of newer input alone.
        """
        changes = dict(
            file_tree=tree,
            selected_content=selected_content,
            is_processing=False,
            error_message=None,
        )
        if validation is not None:
            changes["validation"] = validation
        self._update(**changes)

    def reset(self) -> None:
        with self._lock:
            self._state = SplitterState()
            snapshot = replace(self._state)
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)


class OutcomeKind(Enum):
    SUCCESS = "success"
    NO_CHANGE = "no_change"
    FAILED = "failed"
    CANCELED = "canceled"
    REJECTED = "rejected"
    DECLINED = "declined"


@dataclass(frozen=True)
class SplitOutcome:
    """Classified result of one split request."""
    kind: OutcomeKind
    tree: Optional[FileTree] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


class ValidationDebouncer:
    """
    Runs validation once the input has been quiet for ``delay`` seconds.

    Each ``submit`` cancels the pending timer; a generation counter drops any
    timer that already fired for stale text.
    """

    def __init__(
        self,
        validate: Callable[[str], ValidationState],
        on_result: Callable[[ValidationState], None],
        delay: float = VALIDATION_DEBOUNCE_SECONDS,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self._validate = validate
        self._on_result = on_result
        self.delay = delay
        self._timer_factory = timer_factory
        self._timer = None
        self._generation = 0
        self._lock = threading.Lock()

    def submit(self, text: str) -> None:
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            generation = self._generation
            blank = not text.strip()
            if not blank:
                self._timer = self._timer_factory(self.delay, self._fire, args=(generation, text))
                self._timer.daemon = True
                self._timer.start()

        # An empty editor is not flagged while typing
        if blank:
            self._on_result(ValidationState.valid())

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._generation += 1

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int, text: str) -> None:
        with self._lock:
            if generation != self._generation:
                return

        state = self._validate(text)

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding validation for superseded input")
                return
            self._timer = None

        # Listeners may submit again, so the lock is released first
        self._on_result(state)


class OperationCoordinator:
    """
    Entry point for the presentation layer.

    Intents: ``edit_text``, ``request_split``, ``start_split``,
    ``request_clear``, ``request_upload``, ``select_node``,
    ``export_archive``.
    """

    def __init__(
        self,
        store: Optional[SplitterStore] = None,
        validator: Optional[YamlValidator] = None,
        splitter: Optional[OpenAPISplitter] = None,
        confirm_large_input: Optional[Callable[[int], bool]] = None,
        large_input_threshold: int = LARGE_INPUT_THRESHOLD,
        debounce_seconds: float = VALIDATION_DEBOUNCE_SECONDS,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        """
        Initialize the coordinator.

        Args:
            store: State store; a new one is created if omitted
            validator: YAML validator
            splitter: Document splitter
            confirm_large_input: Called with the byte size of uploads above
                the threshold; returning False declines the upload
            large_input_threshold: Size in bytes that needs confirmation
            debounce_seconds: Quiet period for live validation
            timer_factory: ``threading.Timer`` compatible factory
        """
        self.store = store or SplitterStore()
        self.validator = validator or YamlValidator()
        self.splitter = splitter or OpenAPISplitter()
        self.confirm_large_input = confirm_large_input or (lambda size: True)
        self.large_input_threshold = large_input_threshold
        self.changes = ChangeDetector()

        self._lock = threading.RLock()
        self._token: Optional[CancellationToken] = None
        self._active: Optional[CancellationToken] = None

        self.debouncer = ValidationDebouncer(
            self.validator.validate,
            self.store.set_validation,
            delay=debounce_seconds,
            timer_factory=timer_factory,
        )

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._active is not None

    def edit_text(self, text: str) -> None:
        """Store new input text and schedule live validation."""
        self.store.set_input_text(text)
        self.debouncer.submit(text)

    def request_split(self, text: Optional[str] = None) -> SplitOutcome:
        """
        Run validate -> parse -> split on ``text`` (or the stored input).

        Returns:
            The classified outcome. CANCELED and REJECTED leave the store
            untouched.
        """
        with self._lock:
            if self._active is not None:
                logger.debug("Split request rejected: another split is in progress")
                return SplitOutcome(OutcomeKind.REJECTED)

            if text is None:
                text = self.store.snapshot().input_text

            if not text.strip():
                error = InputEmptyError()
                if self._is_current(text):
                    self.store.set_validation(self.validator.validate(text))
                self.store.set_error(str(error))
                return SplitOutcome(OutcomeKind.FAILED, message=str(error))

            size = len(text.encode('utf-8'))
            if size > self.large_input_threshold:
                logger.warning(f"Large input ({size / 1024 / 1024:.2f}MB), processing may take a while")

            if self.changes.is_unchanged(text):
                notice = NoChange()
                logger.info(str(notice))
                self.store.set_info(str(notice))
                return SplitOutcome(OutcomeKind.NO_CHANGE, message=str(notice))

            if self._token is not None:
                self._token.cancel()
            token = CancellationToken()
            self._token = token
            self._active = token
            self.store.set_processing(True)

        try:
            tree = self._run_pipeline(text, token)
            with self._lock:
                token.raise_if_canceled()
                self.changes.record(text)
                validation = ValidationState.valid() if self._is_current(text) else None
                self.store.commit_split(tree, select_content(tree.roots[0]), validation)
            return SplitOutcome(OutcomeKind.SUCCESS, tree=tree)
        except OperationCanceled:
            logger.debug("Split canceled: superseded by a newer request")
            return SplitOutcome(OutcomeKind.CANCELED)
        except FragmenterError as e:
            return self._fail(token, text, e)
        finally:
            with self._lock:
                if self._active is token:
                    self._active = None
                    if not token.is_canceled:
                        self.store.set_processing(False)

    def _run_pipeline(self, text: str, token: CancellationToken) -> FileTree:
        token.raise_if_canceled()
        validation = self.validator.validate(text)
        if not validation.is_valid:
            raise YamlSyntaxError(validation.errors)

        token.raise_if_canceled()
        document = self.validator.parse(text)

        token.raise_if_canceled()
        tree = self.splitter.split(document)

        token.raise_if_canceled()
        return tree

    def _is_current(self, text: str) -> bool:
        """Whether ``text`` is still the input in the store."""
        return self.store.snapshot().input_text == text

    def _fail(self, token: CancellationToken, text: str, error: FragmenterError) -> SplitOutcome:
        with self._lock:
            if token.is_canceled:
                logger.debug(f"Discarding error from superseded split: {error}")
                return SplitOutcome(OutcomeKind.CANCELED)

            message = str(error)
            logger.error(f"Split failed: {message}")
            if isinstance(error, YamlSyntaxError) and self._is_current(text):
                self.store.set_validation(ValidationState.invalid(error.errors))
            self.store.set_error(message)
            return SplitOutcome(OutcomeKind.FAILED, message=message)

    def start_split(
        self,
        on_complete: Optional[Callable[[SplitOutcome], None]] = None,
        text: Optional[str] = None,
    ) -> threading.Thread:
        """
        Run ``request_split`` on a daemon thread.

        Args:
            on_complete: Called with the outcome from the worker thread
            text: Text to split; defaults to the stored input

        Returns:
            The started thread
        """
        def worker():
            outcome = self.request_split(text)
            if on_complete is not None:
                on_complete(outcome)

        thread = threading.Thread(target=worker, daemon=True)
        thread.start()
        return thread

    def request_clear(self) -> None:
        """Cancel any running split, drop pending validation, reset state."""
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._token = None
            self._active = None
            self.changes.reset()
            self.debouncer.cancel()
            self.store.reset()
        logger.debug("State cleared")

    def request_upload(self, data: bytes) -> SplitOutcome:
        """
        Load uploaded bytes as the input and split them.

        Uploads above the size threshold go through ``confirm_large_input``
        first; a refusal leaves the state untouched.
        """
        size = len(data)
        if size > self.large_input_threshold and not self.confirm_large_input(size):
            logger.info(f"Upload of {size} bytes declined")
            return SplitOutcome(OutcomeKind.DECLINED)

        try:
            text = data.decode('utf-8')
        except UnicodeDecodeError as e:
            error = InputDecodeError(f"Error reading file: {e}")
            logger.error(str(error))
            self.store.set_error(str(error))
            return SplitOutcome(OutcomeKind.FAILED, message=str(error))

        self.edit_text(text)
        return self.request_split(text)

    def select_node(self, node: FileNode) -> str:
        content = select_content(node)
        self.store.set_selected_content(content)
        return content

    def export_archive(self, builder: Optional[ArchiveBuilder] = None) -> Optional[bytes]:
        """
        Build an archive of the current tree.

        Failures are logged and not retried.

        Returns:
            Archive bytes, or None if the export failed
        """
        tree = self.store.snapshot().file_tree
        try:
            return export_archive(tree, builder)
        except ExportError as e:
            logger.error(f"Export failed: {e}")
            return None
