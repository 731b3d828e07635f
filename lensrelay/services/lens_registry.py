"""Lens registry: lifecycle of lens identities and their short links.

The registry owns every lens in the process. It handles:
- Code generation (unique among live lenses, bounded retries per length)
- Connecting lenses to a destination chat and setting expiry
- Short-link minting and resolution
- Public URL formatting against the configured base address
- Write-through persistence of the full state after each mutation
- Lazy garbage collection of lenses long past their expiry

All methods are synchronous and never await mid-mutation, so on a single
event loop each call is an atomic step and no locking is needed.
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import Callable, List
from urllib.parse import quote

from lensrelay.adapters.storage.base import AbstractSnapshotStore
from lensrelay.core.errors import PersistenceAppError, ValidationAppError
from lensrelay.schemas.lens import (
    LENS_NAME_MAX_CHARS,
    ExpiryChoice,
    Lens,
    LensKind,
    ShortLink,
    choice_to_ms,
)
from lensrelay.services.lens_store import LensStore

logger = logging.getLogger(__name__)

# 32 symbols: uppercase without I/O and digits without 0/1, so codes survive being read aloud
LENS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
LENS_CODE_LENGTH = 6

# Wider mixed-case set for short links, harder to enumerate
SHORT_CODE_ALPHABET = "abcdefghijkmnopqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ123456789"
SHORT_CODE_LENGTH = 7

GRACE_MS = 4 * 24 * 60 * 60 * 1000

CodeGenerator = Callable[[int, str], str]


def now_ms() -> int:
    """Current wall-clock time as unix epoch milliseconds."""
    return int(time.time() * 1000)


def random_code(length: int, alphabet: str) -> str:
    """Draw ``length`` symbols uniformly from ``alphabet``."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_unique_code(
    is_taken: Callable[[str], bool],
    *,
    length: int,
    alphabet: str,
    max_attempts: int,
    generator: CodeGenerator = random_code,
) -> str:
    """Draw codes until one is free, growing the length when a size is crowded.

    Args:
        is_taken: Predicate telling whether a candidate collides.
        length: Initial code length.
        alphabet: Symbols to draw from.
        max_attempts: Draws per length before moving to ``length + 1``.
        generator: Source of random candidates.

    Returns:
        A code for which ``is_taken`` is False.
    """
    while True:
        for _ in range(max_attempts):
            candidate = generator(length, alphabet)
            if not is_taken(candidate):
                return candidate
        logger.warning(
            "registry.code_length_exhausted",
            extra={"length": length, "attempts": max_attempts},
        )
        length += 1


def _validate_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationAppError(
            code="lens_name_empty",
            message="Lens name must not be empty",
        )
    if len(cleaned) > LENS_NAME_MAX_CHARS:
        raise ValidationAppError(
            code="lens_name_too_long",
            message=f"Lens name must be at most {LENS_NAME_MAX_CHARS} characters",
            details={"max_chars": LENS_NAME_MAX_CHARS, "actual_value": len(cleaned)},
        )
    return cleaned


class LensRegistry:
    """Owns lenses and short links; persists a snapshot after each change.

    Attributes:
        grace_ms: How long past expiry a lens survives before the sweep.
    """

    def __init__(
        self,
        snapshot_store: AbstractSnapshotStore,
        *,
        public_base_url: str,
        grace_ms: int = GRACE_MS,
        max_code_attempts: int = 32,
        clock: Callable[[], int] = now_ms,
        code_generator: CodeGenerator = random_code,
        store: LensStore | None = None,
    ) -> None:
        self._snapshots = snapshot_store
        self._store = store if store is not None else LensStore()
        self._base_url = public_base_url.rstrip("/")
        self.grace_ms = grace_ms
        self._max_code_attempts = max_code_attempts
        self._clock = clock
        self._generate = code_generator

    def __len__(self) -> int:
        return len(self._store)

    # Persistence

    def load(self) -> None:
        """Load persisted state wholesale; start empty and save if none exists.

        A snapshot that exists but cannot be read is logged and the registry
        starts empty without overwriting it.
        """
        try:
            snapshot = self._snapshots.load()
        except PersistenceAppError as exc:
            logger.error(
                "registry.load_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            return

        if snapshot is None:
            logger.info("registry.snapshot_missing")
            self._persist()
            return

        self._store.replace(snapshot)
        logger.info(
            "registry.loaded",
            extra={"lenses": len(snapshot.lenses), "short_links": len(snapshot.short_links)},
        )

    def _persist(self) -> None:
        try:
            self._snapshots.save(self._store.snapshot())
        except PersistenceAppError as exc:
            logger.error(
                "registry.persist_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )

    # Lens lifecycle

    def create_lens(self, owner_id: int, name: str, kind: LensKind | str = LensKind.CAMERA) -> Lens:
        """Create an unconnected lens with a fresh code.

        Raises:
            ValidationAppError: If the name is empty or too long.
        """
        cleaned = _validate_name(name)
        try:
            lens_kind = LensKind(kind or LensKind.CAMERA)
        except ValueError as exc:
            raise ValidationAppError(
                code="lens_kind_invalid",
                message=f"Unknown lens kind: '{kind}'. Supported kinds: camera, online",
            ) from exc
        code = generate_unique_code(
            lambda candidate: candidate in self._store,
            length=LENS_CODE_LENGTH,
            alphabet=LENS_CODE_ALPHABET,
            max_attempts=self._max_code_attempts,
            generator=self._generate,
        )

        lens = Lens(code=code, name=cleaned, owner_id=owner_id, kind=lens_kind)
        self._store.set(lens)
        logger.info(
            "registry.lens_created",
            extra={"owner_id": owner_id, "lens_code": code, "kind": lens_kind.value},
        )
        self._persist()
        return lens

    def connect_lens(self, code: str, destination_id: int) -> Lens | None:
        lens = self._store.get(code)
        if lens is None:
            return None
        lens.destination_id = destination_id
        logger.info(
            "registry.lens_connected",
            extra={"lens_code": code, "destination_id": destination_id},
        )
        self._persist()
        return lens

    def set_expiry(self, code: str, expires_at_ms: int) -> Lens | None:
        lens = self._store.get(code)
        if lens is None:
            return None
        lens.expires_at = int(expires_at_ms)
        logger.info(
            "registry.lens_expiry_set",
            extra={"lens_code": code, "expires_at": lens.expires_at},
        )
        self._persist()
        return lens

    def set_expiry_choice(
        self, code: str, choice: ExpiryChoice | str, now_ms: int | None = None
    ) -> Lens | None:
        """Set expiry to now plus one of the offered lifetimes."""
        now = self._clock() if now_ms is None else now_ms
        return self.set_expiry(code, now + choice_to_ms(choice))

    def get_lens(self, code: str) -> Lens | None:
        return self._store.get(code)

    def list_by_owner(self, owner_id: int) -> List[Lens]:
        """Sweep stale lenses, then return the owner's lenses in creation order."""
        self.cleanup()
        return self._store.owned_by(owner_id)

    def is_expired(self, code: str) -> bool:
        lens = self._store.get(code)
        if lens is None or lens.expires_at is None:
            return False
        return self._clock() > lens.expires_at

    def cleanup(self, now_ms: int | None = None) -> int:
        """Delete lenses whose expiry is more than the grace period ago.

        Args:
            now_ms: Reference time; defaults to the registry clock.

        Returns:
            Number of lenses removed.
        """
        now = self._clock() if now_ms is None else now_ms
        removed = [
            lens.code
            for lens in self._store
            if lens.expires_at is not None and now - lens.expires_at > self.grace_ms
        ]
        for code in removed:
            self._store.delete(code)

        if removed:
            logger.info(
                "registry.cleanup",
                extra={"removed": len(removed), "remaining": len(self._store)},
            )
            self._persist()
        return len(removed)

    # Short links

    def ensure_short(self, long_url: str) -> ShortLink:
        """Return the short link for ``long_url``, minting one if needed."""
        existing = self._store.find_short(long_url)
        if existing is not None:
            return ShortLink(short_code=existing, short_url=self.short_url(existing))

        short_code = generate_unique_code(
            self._store.has_short,
            length=SHORT_CODE_LENGTH,
            alphabet=SHORT_CODE_ALPHABET,
            max_attempts=self._max_code_attempts,
            generator=self._generate,
        )
        self._store.set_short(short_code, long_url)
        logger.info("registry.short_link_created", extra={"short_code": short_code})
        self._persist()
        return ShortLink(short_code=short_code, short_url=self.short_url(short_code))

    def ensure_lens_short(self, code: str) -> ShortLink | None:
        """Shorten the lens's current public URL and remember it on the lens.

        The URL carries the expiry, so a new expiry yields a new short code.
        """
        lens = self._store.get(code)
        if lens is None:
            return None

        link = self.ensure_short(self.public_url(lens))
        if lens.short_code != link.short_code:
            lens.short_code = link.short_code
            self._persist()
        return link

    def resolve_short(self, short_code: str) -> str | None:
        return self._store.get_short(short_code)

    # URL formatting

    def _with_expiry(self, url: str, code: str, expires_at: int | None) -> str:
        if expires_at is None:
            lens = self._store.get(code)
            expires_at = lens.expires_at if lens else None
        if expires_at:
            return f"{url}?exp={expires_at}"
        return url

    def long_url(self, code: str, expires_at: int | None = None) -> str:
        return self._with_expiry(f"{self._base_url}/lens/{quote(code, safe='')}", code, expires_at)

    def online_url(self, code: str, expires_at: int | None = None) -> str:
        return self._with_expiry(f"{self._base_url}/online/{quote(code, safe='')}", code, expires_at)

    def short_url(self, short_code: str) -> str:
        return f"{self._base_url}/l/{quote(short_code, safe='')}"

    def public_url(self, lens: Lens) -> str:
        """Camera or online URL depending on the lens kind."""
        if lens.kind == LensKind.ONLINE:
            return self.online_url(lens.code, lens.expires_at)
        return self.long_url(lens.code, lens.expires_at)
