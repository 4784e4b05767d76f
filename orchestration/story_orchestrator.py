# orchestration/story_orchestrator.py
"""Request orchestration for the branching story session.

Each call runs the same pipeline: connectivity check, credential check,
rate budget, cache lookup and, on a miss, the bounded and retried network
call followed by parsing. Story state only changes when a request
succeeds; the whole conversation is persisted after every change.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from config import StorytellerSettings, settings
from core.connectivity import ConnectivityProbe
from core.errors import ErrorKind, StoryError, classify_error
from core.llm_interface import LLMService
from core.rate_limiter import RateLimiter
from models.story_models import (
    CacheEntry,
    ConversationState,
    StoryPhase,
    StoryResult,
    StorySegment,
)
from orchestration.story_cache import StoryCache, make_cache_key
from parsing import parse_story_response
from prompt_renderer import render_story_prompt
from storage.state_store import MemoryKeyValueStorage, StateStore

logger = structlog.get_logger(__name__)

OFFLINE_MESSAGE = "You are currently offline. Please check your internet connection."
MISSING_KEY_MESSAGE = "API key is not configured"
EMPTY_PROMPT_MESSAGE = "Please enter a story prompt!"
BUSY_MESSAGE = "A story request is already in progress."
SAVE_FAILED_MESSAGE = "Could not save story state"
CONTINUE_PROMPT = "Continue the story based on the choice: {choice}"


class StoryOrchestrator:
    """Owns one conversation: its state, cache, rate window and request lifecycle."""

    def __init__(
        self,
        config: StorytellerSettings = settings,
        llm_service: LLMService | None = None,
        connectivity: ConnectivityProbe | None = None,
        rate_limiter: RateLimiter | None = None,
        cache: StoryCache | None = None,
        store: StateStore | None = None,
    ) -> None:
        self.config = config
        self.llm_service = llm_service or LLMService(config)
        self.connectivity = connectivity or ConnectivityProbe(
            health_url=config.HEALTH_CHECK_URL,
            timeout=config.HEALTH_CHECK_TIMEOUT_SECONDS,
        )
        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=config.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        )
        self.cache = cache if cache is not None else StoryCache(config.STORY_CACHE_SIZE)
        self.store = store or StateStore(
            MemoryKeyValueStorage(), key=config.STORAGE_KEY
        )

        self._state = self.store.load()
        self.phase = StoryPhase.IDLE
        self.last_error: StoryError | None = None
        self.is_offline = False
        # Bumped on reset so a request started earlier cannot write into the new session
        self._session_generation = 0

        logger.info(
            "Story orchestrator initialized.",
            restored_segments=len(self._state.history),
        )

    # --- Readable state -------------------------------------------------

    @property
    def state(self) -> ConversationState:
        return self._state.model_copy(deep=True)

    @property
    def prompt(self) -> str:
        return self._state.prompt

    @property
    def story(self) -> str:
        return self._state.current_story_text

    @property
    def choices(self) -> list[str]:
        return list(self._state.current_choices)

    @property
    def prior_choices(self) -> list[str]:
        return list(self._state.prior_choices)

    @property
    def history(self) -> list[StorySegment]:
        return list(self._state.history)

    @property
    def is_loading(self) -> bool:
        return self.phase is StoryPhase.REQUESTING

    @property
    def error(self) -> str:
        return self.last_error.message if self.last_error else ""

    # --- Lifecycle ------------------------------------------------------

    async def aclose(self) -> None:
        """Close the HTTP clients owned by the collaborators."""
        await self.llm_service.aclose()
        await self.connectivity.aclose()

    def acknowledge(self) -> None:
        """Return a settled request (succeeded or failed) to idle."""
        if self.phase in (StoryPhase.SUCCEEDED, StoryPhase.FAILED):
            self.phase = StoryPhase.IDLE

    def set_prompt(self, text: str) -> None:
        self._state.prompt = text
        self._persist()

    async def refresh_connectivity(self) -> bool:
        """Probe connectivity and update :attr:`is_offline`."""
        online = await self.connectivity.is_online()
        if self.is_offline == online:
            logger.info("Connectivity changed.", online=online)
        self.is_offline = not online
        return online

    async def start_new_story(self, prompt_text: str | None = None) -> StoryResult:
        """Begin a new session from ``prompt_text`` (or the stored prompt)."""
        self._ensure_idle()
        if prompt_text is not None:
            self.set_prompt(prompt_text)
        story_prompt = self._state.prompt
        if not story_prompt.strip():
            error = StoryError(ErrorKind.INVALID_INPUT, EMPTY_PROMPT_MESSAGE)
            self._record_failure(error, StoryPhase.IDLE)
            raise error
        return await self._request(story_prompt, prior_choices=[])

    async def select_choice(self, choice: str | int) -> StoryResult | None:
        """Continue with one of the current choices, by text or index.

        Returns ``None`` without doing anything when the choice is not one
        of the current options.
        """
        self._ensure_idle()
        choice_text = self._resolve_choice(choice)
        if choice_text is None:
            logger.debug("Ignoring selection outside the current choices.", choice=choice)
            return None
        return await self._request(
            CONTINUE_PROMPT.format(choice=choice_text),
            prior_choices=[*self._state.prior_choices, choice_text],
        )

    async def reset_session(self) -> None:
        """Drop the whole conversation and its persisted copy."""
        self._session_generation += 1
        self._state = ConversationState()
        self.last_error = None
        self.phase = StoryPhase.IDLE
        self._clear_store()
        logger.info("Story session reset.")

    # --- Internals ------------------------------------------------------

    def _ensure_idle(self) -> None:
        if self.phase is StoryPhase.REQUESTING:
            raise StoryError(ErrorKind.UNKNOWN, BUSY_MESSAGE, code="busy")
        self.acknowledge()

    def _resolve_choice(self, choice: str | int) -> str | None:
        current = self._state.current_choices
        if isinstance(choice, int) and not isinstance(choice, bool):
            if 0 <= choice < len(current):
                return current[choice]
            return None
        if isinstance(choice, str) and choice in current:
            return choice
        return None

    def _record_failure(self, error: StoryError, phase: StoryPhase) -> None:
        self.last_error = error
        self.phase = phase
        logger.error(
            "Story request failed.",
            kind=error.kind.value,
            error_message=error.message,
            status_code=error.status_code,
            code=error.code,
        )

    def _persist(self) -> None:
        try:
            self.store.save(self._state)
        except OSError as exc:
            raise self._storage_failure(exc) from exc

    def _clear_store(self) -> None:
        try:
            self.store.clear()
        except OSError as exc:
            raise self._storage_failure(exc) from exc

    def _storage_failure(self, exc: OSError) -> StoryError:
        error = StoryError(ErrorKind.UNKNOWN, f"{SAVE_FAILED_MESSAGE}: {exc}")
        self._record_failure(error, StoryPhase.FAILED)
        return error

    async def _check_preconditions(self) -> None:
        if not await self.refresh_connectivity():
            raise StoryError(
                ErrorKind.NETWORK, OFFLINE_MESSAGE, code="offline", retryable=True
            )
        if not self.config.has_api_key():
            raise StoryError(ErrorKind.CONFIGURATION, MISSING_KEY_MESSAGE)
        self.rate_limiter.check_and_record()

    async def _request(
        self, request_prompt: str, prior_choices: Sequence[str]
    ) -> StoryResult:
        generation = self._session_generation
        self.phase = StoryPhase.REQUESTING
        self.last_error = None
        try:
            try:
                await self._check_preconditions()
            except StoryError as error:
                if generation == self._session_generation:
                    self._record_failure(error, StoryPhase.IDLE)
                raise

            key = make_cache_key(request_prompt, prior_choices)
            entry = self.cache.get(key)
            from_cache = entry is not None
            if entry is None:
                try:
                    rendered = render_story_prompt(request_prompt, prior_choices)
                    envelope = await self.llm_service.generate_content(rendered)
                    entry = parse_story_response(envelope)
                except Exception as exc:
                    error = classify_error(exc)
                    if generation == self._session_generation:
                        self._record_failure(error, StoryPhase.FAILED)
                    if error is exc:
                        raise
                    raise error from exc
                self.cache.put(key, entry)
            else:
                logger.info("Story cache hit; skipping network call.")

            if generation != self._session_generation:
                logger.info("Session was reset during the request; discarding result.")
            else:
                self._commit(entry, prior_choices)
                self.phase = StoryPhase.SUCCEEDED
            return StoryResult(
                story_text=entry.story_text,
                choices=list(entry.choices),
                from_cache=from_cache,
            )
        finally:
            if (
                self.phase is StoryPhase.REQUESTING
                and generation == self._session_generation
            ):
                self.phase = StoryPhase.IDLE

    def _commit(self, entry: CacheEntry, prior_choices: Sequence[str]) -> None:
        segment = StorySegment(
            text=entry.story_text,
            choice_taken=prior_choices[-1] if prior_choices else None,
        )
        if prior_choices:
            self._state.history.append(segment)
        else:
            self._state.history = [segment]
        self._state.prior_choices = list(prior_choices)
        self._state.current_story_text = entry.story_text
        self._state.current_choices = list(entry.choices)
        self._persist()
        logger.info(
            "Story advanced.",
            segments=len(self._state.history),
            choices=len(entry.choices),
        )
