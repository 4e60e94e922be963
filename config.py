"""
Configuration and data loading/saving for GroupSplitLedger
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from models import Expense, Group, Person, PersonStatus
from utils import app_dir, now, parse_datetime

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
GROUPS_FILE = "groups.json"
ACTIVE_GROUP_FILE = "current_group.json"


class Settings(BaseSettings):
    """
    Runtime settings.

    Read from SPLIT_LEDGER_* environment variables, e.g. SPLIT_LEDGER_HOME
    for the data directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPLIT_LEDGER_",
        case_sensitive=False,
        extra="ignore",
    )

    home: str = Field(
        default_factory=app_dir,
        description="Directory holding groups.json and current_group.json",
    )
    log_level: str = Field(default="WARNING", description="stdlib logging level name")
    currency: str = Field(default="¥", description="Currency symbol used in reports")

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def data_dir(self) -> str:
        return self.home


def load_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------- Serialization ----------
def person_to_dict(p: Person) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "avatar": p.avatar,
        "is_deleted": p.is_deleted,
        "created_at": p.created_at.isoformat(),
    }


def dict_to_person(d: dict) -> Person:
    return Person(
        id=d["id"],
        name=d["name"],
        avatar=d.get("avatar"),
        status=PersonStatus.DELETED if d.get("is_deleted") else PersonStatus.ACTIVE,
        created_at=parse_datetime(d["created_at"]) if d.get("created_at") else now(),
    )


def expense_to_dict(e: Expense) -> dict:
    return {
        "id": e.id,
        "title": e.title,
        "amount": e.amount,
        "payer_id": e.payer_id,
        "participants": list(e.participants),
        "description": e.description,
        "category": e.category,
        "created_at": e.created_at.isoformat(),
    }


def dict_to_expense(d: dict) -> Expense:
    return Expense(
        id=d["id"],
        title=d["title"],
        amount=float(d["amount"]),
        payer_id=d["payer_id"],
        participants=tuple(d.get("participants", [])),
        description=d.get("description"),
        category=d.get("category"),
        created_at=parse_datetime(d["created_at"]) if d.get("created_at") else now(),
    )


def group_to_dict(g: Group) -> dict:
    """Convert Group object to dictionary for JSON serialization"""
    return {
        "version": FORMAT_VERSION,
        "id": g.id,
        "name": g.name,
        "description": g.description,
        "members": [person_to_dict(p) for p in g.members],
        "expenses": [expense_to_dict(e) for e in g.expenses],
        "created_at": g.created_at.isoformat(),
        "updated_at": g.updated_at.isoformat(),
    }


def dict_to_group(d: dict) -> Group:
    """Convert dictionary from JSON to Group object, restoring timestamps"""
    created = parse_datetime(d["created_at"]) if d.get("created_at") else now()
    return Group(
        id=d["id"],
        name=d["name"],
        description=d.get("description"),
        members=tuple(dict_to_person(p) for p in d.get("members", [])),
        expenses=tuple(dict_to_expense(e) for e in d.get("expenses", [])),
        created_at=created,
        updated_at=parse_datetime(d["updated_at"]) if d.get("updated_at") else created,
    )


# ---------- Storage backends ----------
class StorageBackend(ABC):
    """
    Load/save contract used by the ledger store.

    save_* calls are fire-and-forget: implementations log failures
    instead of raising them into the caller.
    """

    @abstractmethod
    def load_groups(self) -> List[Group]:
        """Return all persisted groups with timestamps as datetimes"""

    @abstractmethod
    def load_active_group_id(self) -> Optional[str]:
        pass

    @abstractmethod
    def save_groups(self, groups: Sequence[Group]) -> None:
        """Persist the full group collection; idempotent"""

    @abstractmethod
    def save_active_group_id(self, group_id: str) -> None:
        pass

    @abstractmethod
    def clear_all(self) -> None:
        """Erase every persisted group and the active group id"""


class MemoryStorage(StorageBackend):
    """Keeps serialized state in memory; handy for tests and embedding"""

    def __init__(self):
        self.groups_data: List[dict] = []
        self.active_group_id: Optional[str] = None
        self.save_count = 0

    def load_groups(self) -> List[Group]:
        return [dict_to_group(d) for d in self.groups_data]

    def load_active_group_id(self) -> Optional[str]:
        return self.active_group_id

    def save_groups(self, groups: Sequence[Group]) -> None:
        self.groups_data = [group_to_dict(g) for g in groups]
        self.save_count += 1

    def save_active_group_id(self, group_id: str) -> None:
        self.active_group_id = group_id

    def clear_all(self) -> None:
        self.groups_data = []
        self.active_group_id = None


class JsonFileStorage(StorageBackend):
    """Stores groups and the active group id as JSON files in a directory"""

    def __init__(self, directory: str):
        self.directory = directory
        self.groups_path = os.path.join(directory, GROUPS_FILE)
        self.active_path = os.path.join(directory, ACTIVE_GROUP_FILE)

    def _read_json(self, path: str):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None

    def _write_json(self, path: str, data) -> None:
        """Atomic write: temp file, then rename over the target"""
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    def load_groups(self) -> List[Group]:
        try:
            data = self._read_json(self.groups_path)
            if not data:
                return []
            return [dict_to_group(d) for d in data]
        except (OSError, ValueError, KeyError, TypeError) as ex:
            logger.error("Failed to load groups from %s: %s", self.groups_path, ex)
            return []

    def load_active_group_id(self) -> Optional[str]:
        try:
            data = self._read_json(self.active_path)
        except (OSError, ValueError) as ex:
            logger.error("Failed to load active group from %s: %s", self.active_path, ex)
            return None
        if not isinstance(data, dict):
            return None
        return data.get("active_group_id")

    def save_groups(self, groups: Sequence[Group]) -> None:
        try:
            self._write_json(self.groups_path, [group_to_dict(g) for g in groups])
        except OSError as ex:
            logger.error("Failed to save groups to %s: %s", self.groups_path, ex)

    def save_active_group_id(self, group_id: str) -> None:
        try:
            self._write_json(self.active_path, {"active_group_id": group_id})
        except OSError as ex:
            logger.error("Failed to save active group to %s: %s", self.active_path, ex)

    def clear_all(self) -> None:
        for path in (self.groups_path, self.active_path):
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
