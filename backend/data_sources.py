"""
Curriculum ("malla") and progress ("avance") sources for the service layer.

Both sources expose the same two methods:
  get_curriculum(program_code, catalog) -> list[CourseDefinition]
  get_history(student_id, program_code) -> list[HistoryRecord]

The projection engine never sees which one is in use; the Flask app gets
one injected at startup (see build_data_source).
"""

import json
import os
import re
import sys
import threading
from urllib.parse import quote

import requests

from data_loader import load_stub_data, parse_curriculum, parse_history

_UNSAFE_KEY_CHARS = re.compile(r'[^A-Za-z0-9_.-]+')


class DataSourceError(Exception):
    """Upstream portal failure with no usable fallback."""

    def __init__(self, message: str, status: int = 502):
        super().__init__(message)
        self.message = message
        self.status = status


class BackupStore:
    """Last-known-good portal payloads, one JSON file per key."""

    def __init__(self, directory: str):
        self.directory = directory
        self._lock = threading.Lock()

    def _path(self, kind: str, *parts: str) -> str:
        key = "_".join([kind] + [_UNSAFE_KEY_CHARS.sub("-", str(p)) for p in parts])
        return os.path.join(self.directory, f"{key}.json")

    def get(self, kind: str, *parts: str):
        path = self._path(kind, *parts)
        with self._lock:
            if not os.path.exists(path):
                return None
            with open(path, encoding="utf-8") as fh:
                return json.load(fh)

    def put(self, kind: str, *parts: str, data) -> None:
        path = self._path(kind, *parts)
        with self._lock:
            os.makedirs(self.directory, exist_ok=True)
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)


class StubDataSource:
    """Serves bundled CSV/workbook data; loaded once, on first use."""

    def __init__(self, data_path: str):
        self.data_path = data_path
        self._data = None
        self._lock = threading.Lock()

    def _ensure_loaded(self) -> dict:
        with self._lock:
            if self._data is None:
                self._data = load_stub_data(self.data_path)
            return self._data

    def get_curriculum(self, program_code: str, catalog: str):
        df = self._ensure_loaded()["malla_df"]
        # Scope columns are optional; rows with a blank scope apply to every program.
        if "program_code" in df.columns:
            df = df[df["program_code"].isin(["", str(program_code)])]
        if "catalog" in df.columns:
            df = df[df["catalog"].isin(["", str(catalog)])]
        return parse_curriculum(df)

    def get_history(self, student_id: str, program_code: str):
        df = self._ensure_loaded()["avance_df"]
        if len(df) and (df["student"] == str(student_id)).any():
            df = df[df["student"] == str(student_id)]
        if "program_code" in df.columns:
            df = df[df["program_code"].isin(["", str(program_code)])]
        return parse_history(df)


class RemoteDataSource:
    """
    University portal client. Successful payloads are mirrored into the
    backup store; on failure the backup is served when fallback is enabled.
    """

    def __init__(
        self,
        curriculum_base_url: str,
        progress_base_url: str,
        auth_token: str = "",
        backup: BackupStore | None = None,
        use_backup_fallback: bool = False,
        timeout: float = 10.0,
        session=None,
    ):
        self.curriculum_base_url = curriculum_base_url.rstrip("/")
        self.progress_base_url = progress_base_url.rstrip("/")
        self.auth_token = auth_token
        self.backup = backup
        self.use_backup_fallback = use_backup_fallback
        self.timeout = timeout
        self._session = session or requests.Session()

    def _fetch(self, label: str, backup_key: tuple, url: str, **kwargs):
        try:
            resp = self._session.get(url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            response = getattr(exc, "response", None)
            status = response.status_code if response is not None else 502
            print(f"[WARN] Portal {label} request failed: status={status} error={exc}", file=sys.stderr)
            if self.use_backup_fallback and self.backup is not None:
                cached = self.backup.get(*backup_key)
                if cached is not None:
                    print(f"[WARN] Serving {label} from backup: {backup_key}", file=sys.stderr)
                    return cached
            raise DataSourceError(f"Portal {label} request failed.", status) from exc

        if self.backup is not None and isinstance(payload, list):
            self.backup.put(*backup_key, data=payload)
        return payload

    def get_curriculum(self, program_code: str, catalog: str):
        # The portal expects the bare "<program>-<catalog>" query string.
        url = f"{self.curriculum_base_url}/mallas?{quote(str(program_code))}-{quote(str(catalog))}"
        payload = self._fetch(
            "malla",
            ("malla", program_code, catalog),
            url,
            headers={"X-HAWAII-AUTH": self.auth_token},
        )
        return parse_curriculum(payload)

    def get_history(self, student_id: str, program_code: str):
        payload = self._fetch(
            "avance",
            ("avance", student_id, program_code),
            f"{self.progress_base_url}/avance.php",
            params={"rut": student_id, "codcarrera": program_code},
        )
        return parse_history(payload)


def build_data_source(settings: dict):
    if settings.get("use_stubs"):
        print(f"[WARN] Using stub data from {settings['data_path']}")
        return StubDataSource(settings["data_path"])
    if not settings.get("ucn_base_hawaii") or not settings.get("ucn_base_puclaro"):
        print(
            f"[WARN] Portal URLs not configured; using stub data from {settings['data_path']}",
            file=sys.stderr,
        )
        return StubDataSource(settings["data_path"])
    backup = BackupStore(settings["backup_path"])
    return RemoteDataSource(
        settings["ucn_base_hawaii"],
        settings["ucn_base_puclaro"],
        auth_token=settings.get("hawaii_auth", ""),
        backup=backup,
        use_backup_fallback=settings.get("use_backup_fallback", False),
        timeout=settings.get("request_timeout_s", 10.0),
    )
