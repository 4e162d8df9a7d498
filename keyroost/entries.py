"""Decrypted vault contents.

An ``EntryStore`` is the plaintext payload a vault envelope wraps: an
ordered collection of ``Entry`` records keyed by application name.
"""
import time
from typing import Any, Callable, Optional
from collections.abc import Iterable, Iterator

import orjson
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import CorruptData, DuplicateEntry, NotFound
from .generator import DEFAULT_LENGTH, generate_password


def normalize_name(name: str) -> str:
    """Strip an application name and reject empty ones."""
    if not isinstance(name, str):
        raise ValueError("Entry name must be a string")
    name = name.strip()
    if not name:
        raise ValueError("Entry name cannot be empty")
    return name


class Entry(BaseModel):
    """One (application, username, password) record."""

    name: str
    username: str
    password: str = Field(repr=False)
    created_at: float = Field(default=0.0, allow_inf_nan=False)
    updated_at: float = Field(default=0.0, allow_inf_nan=False)

    model_config = {"frozen": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names are unique keys: strip them and forbid empty ones."""
        return normalize_name(v)

    @field_validator("name", "username", "password")
    @classmethod
    def validate_encodable(cls, v: str) -> str:
        """Lone surrogates cannot be written to the vault payload."""
        try:
            v.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError("value is not valid UTF-8 text") from None
        return v

    def same_content(self, other: "Entry") -> bool:
        """Compare the user-visible fields, ignoring timestamps."""
        return (
            self.name == other.name
            and self.username == other.username
            and self.password == other.password
        )


def _revise(entry: Entry, changes: dict[str, Any]) -> Entry:
    """Copy an entry with changes applied, re-running validation."""
    return Entry.model_validate({**entry.model_dump(), **changes})


def _fuzzy_match(query: str, name: str) -> bool:
    """True when every character of query appears in name, in order."""
    chars = iter(name)
    return all(c in chars for c in query)


class EntryStore:
    """Entries of one vault, keyed by application name.

    Iteration and ``list()`` yield entries sorted by name. Every mutation
    stamps the touched entry with ``clock()`` as its ``updated_at``; the
    merger relies on nothing else.
    """

    def __init__(
        self,
        entries: Optional[Iterable[Entry]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._data: dict[str, Entry] = {}
        self._clock = clock
        for entry in entries or ():
            if entry.name in self._data:
                raise DuplicateEntry(entry.name)
            self._data[entry.name] = entry

    def __repr__(self) -> str:
        return f'<EntryStore names={sorted(self._data)!r}>'

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Entry]:
        return self.list()

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return name.strip() in self._data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntryStore):
            return NotImplemented
        return self._data == other._data

    @property
    def empty(self) -> bool:
        return not self._data

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def names(self) -> list[str]:
        return sorted(self._data)

    # --- Lookup ---

    def get(self, name: str) -> Entry:
        """Return the entry stored under name.

        Raises:
            NotFound: If no entry has that name.
        """
        key = normalize_name(name)
        try:
            return self._data[key]
        except KeyError:
            raise NotFound(key) from None

    def find(self, name: str) -> Optional[Entry]:
        """Case-insensitive exact lookup. Returns None when absent."""
        wanted = name.strip().lower()
        for entry in self.list():
            if entry.name.lower() == wanted:
                return entry
        return None

    def search(self, query: str) -> list[Entry]:
        """Fuzzy lookup by name ("ggl" finds "google").

        Exact case-insensitive matches come first, then the rest by name.
        """
        needle = query.strip().lower()
        matches = [
            entry for entry in self.list()
            if _fuzzy_match(needle, entry.name.lower())
        ]
        matches.sort(key=lambda e: e.name.lower() != needle)
        return matches

    # --- Mutations ---

    def put(self, entry: Entry, overwrite: bool = False) -> Entry:
        """Insert an entry, stamping it as modified now.

        Args:
            entry: Entry to store.
            overwrite: Replace an existing entry with the same name.

        Returns:
            The stored (timestamped) entry.

        Raises:
            DuplicateEntry: If the name exists and overwrite is False.
        """
        existing = self._data.get(entry.name)
        if existing is not None and not overwrite:
            raise DuplicateEntry(entry.name)
        now = self._clock()
        if existing is not None:
            created = existing.created_at
        else:
            created = entry.created_at or now
        stored = _revise(entry, {"created_at": created, "updated_at": now})
        self._data[stored.name] = stored
        return stored

    def add(
        self,
        name: str,
        username: str,
        password: str,
        overwrite: bool = False,
    ) -> Entry:
        """Build and ``put`` a new entry."""
        return self.put(
            Entry(name=name, username=username, password=password),
            overwrite=overwrite,
        )

    def update(
        self,
        name: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Entry:
        """Change the username and/or password of an existing entry.

        Raises:
            NotFound: If no entry has that name.
        """
        current = self.get(name)
        changes: dict[str, Any] = {"updated_at": self._clock()}
        if username is not None:
            changes["username"] = username
        if password is not None:
            changes["password"] = password
        updated = _revise(current, changes)
        self._data[current.name] = updated
        return updated

    def regenerate(
        self, name: str, length: int = DEFAULT_LENGTH, alnum: bool = False,
    ) -> Entry:
        """Replace the password of an existing entry with a random one.

        Raises:
            NotFound: If no entry has that name.
            ValueError: If length is smaller than 1.
        """
        return self.update(name, password=generate_password(length, alnum))

    def rename(self, old_name: str, new_name: str) -> Entry:
        """Move an entry to a new application name.

        Raises:
            NotFound: If old_name is absent.
            DuplicateEntry: If new_name is already taken.
        """
        current = self.get(old_name)
        target = normalize_name(new_name)
        if target == current.name:
            return current
        if target in self._data:
            raise DuplicateEntry(target)
        renamed = _revise(
            current, {"name": target, "updated_at": self._clock()}
        )
        del self._data[current.name]
        self._data[target] = renamed
        return renamed

    def delete(self, name: str) -> Entry:
        """Remove an entry and return it.

        Raises:
            NotFound: If no entry has that name.
        """
        current = self.get(name)
        del self._data[current.name]
        return current

    def clear(self) -> None:
        """Drop every entry reference."""
        self._data = {}

    def copy(self) -> "EntryStore":
        """Independent store holding the same (immutable) entries."""
        return EntryStore(self._data.values(), clock=self._clock)

    # --- Serialization ---

    def _payload(self) -> dict:
        return {"entries": [entry.model_dump() for entry in self.list()]}

    def to_bytes(self) -> bytes:
        """Encode the store as the vault plaintext payload."""
        try:
            return orjson.dumps(self._payload())
        except orjson.JSONEncodeError as err:
            raise CorruptData("Entries cannot be encoded as a vault payload") from err

    def export(self) -> bytes:
        """Human-readable plaintext JSON dump of every entry."""
        return orjson.dumps(self._payload(), option=orjson.OPT_INDENT_2)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        clock: Callable[[], float] = time.time,
    ) -> "EntryStore":
        """Decode a vault plaintext payload.

        Raises:
            CorruptData: If the payload is not a valid entry document.
        """
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise CorruptData("Vault payload is not valid JSON") from err
        if not isinstance(parsed, dict) or not isinstance(
            parsed.get("entries"), list
        ):
            raise CorruptData("Vault payload has no entry list")
        try:
            entries = [Entry.model_validate(item) for item in parsed["entries"]]
        except ValidationError as err:
            raise CorruptData(
                f"Vault payload has {err.error_count()} invalid field(s)"
            ) from None
        try:
            return cls(entries, clock=clock)
        except DuplicateEntry as err:
            raise CorruptData(
                f"Vault payload repeats entry {err.name!r}"
            ) from None

    def list(self) -> Iterator[Entry]:
        """Lazily yield entries sorted by name.

        Each call starts a fresh pass; entries removed while a pass is
        running are skipped.
        """
        for name in sorted(self._data):
            entry = self._data.get(name)
            if entry is not None:
                yield entry
