import os
from unittest.mock import MagicMock

import pytest
import requests

from data_sources import (
    BackupStore,
    DataSourceError,
    RemoteDataSource,
    StubDataSource,
    build_data_source,
)

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "data")

CURRICULUM_PAYLOAD = [
    {"codigo": "DCCB-00107", "asignatura": "Algebra I", "creditos": 6, "nivel": 1, "prereq": ""},
    {"codigo": "DCCB-00108", "asignatura": "Algebra II", "creditos": 6, "nivel": 2, "prereq": "DCCB-00107"},
]
HISTORY_PAYLOAD = [
    {"course": "DCCB-00107", "status": "APROBADO", "period": "202310", "nrc": "21001"},
]


def _response(payload=None, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error", response=resp)
    return resp


def _remote(session, backup=None, fallback=False):
    return RemoteDataSource(
        "https://hawaii.example/",
        "https://puclaro.example",
        auth_token="secret",
        backup=backup,
        use_backup_fallback=fallback,
        timeout=3.0,
        session=session,
    )


# ── RemoteDataSource ──────────────────────────────────────────────────────────

class TestRemoteDataSource:
    def test_curriculum_request_shape(self):
        session = MagicMock()
        session.get.return_value = _response(CURRICULUM_PAYLOAD)
        courses = _remote(session).get_curriculum("8606", "201610")

        assert [c.code for c in courses] == ["DCCB-00107", "DCCB-00108"]
        args, kwargs = session.get.call_args
        assert args[0] == "https://hawaii.example/mallas?8606-201610"
        assert kwargs["headers"] == {"X-HAWAII-AUTH": "secret"}
        assert kwargs["timeout"] == 3.0

    def test_history_request_shape(self):
        session = MagicMock()
        session.get.return_value = _response(HISTORY_PAYLOAD)
        records = _remote(session).get_history("11188222333", "8606")

        assert [(r.course, r.status) for r in records] == [("DCCB-00107", "APPROVED")]
        args, kwargs = session.get.call_args
        assert args[0] == "https://puclaro.example/avance.php"
        assert kwargs["params"] == {"rut": "11188222333", "codcarrera": "8606"}

    def test_upstream_status_propagates(self):
        session = MagicMock()
        session.get.return_value = _response(status=503)
        with pytest.raises(DataSourceError) as exc_info:
            _remote(session).get_curriculum("8606", "201610")
        assert exc_info.value.status == 503

    def test_connection_error_is_502(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(DataSourceError) as exc_info:
            _remote(session).get_history("1", "8606")
        assert exc_info.value.status == 502

    def test_bad_json_is_502(self):
        session = MagicMock()
        resp = _response()
        resp.json.side_effect = ValueError("not json")
        session.get.return_value = resp
        with pytest.raises(DataSourceError) as exc_info:
            _remote(session).get_history("1", "8606")
        assert exc_info.value.status == 502

    def test_error_object_payload_is_no_data(self):
        session = MagicMock()
        session.get.return_value = _response({"error": "rut no encontrado"})
        assert _remote(session).get_history("1", "8606") == []

    def test_success_mirrored_to_backup(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(CURRICULUM_PAYLOAD)
        backup = BackupStore(str(tmp_path))
        _remote(session, backup=backup).get_curriculum("8606", "201610")
        assert backup.get("malla", "8606", "201610") == CURRICULUM_PAYLOAD

    def test_fallback_serves_backup(self, tmp_path):
        backup = BackupStore(str(tmp_path))
        backup.put("avance", "1", "8606", data=HISTORY_PAYLOAD)
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        records = _remote(session, backup=backup, fallback=True).get_history("1", "8606")
        assert [r.course for r in records] == ["DCCB-00107"]

    def test_fallback_disabled_raises(self, tmp_path):
        backup = BackupStore(str(tmp_path))
        backup.put("avance", "1", "8606", data=HISTORY_PAYLOAD)
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        with pytest.raises(DataSourceError):
            _remote(session, backup=backup, fallback=False).get_history("1", "8606")

    def test_fallback_without_backup_entry_raises(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(status=500)
        with pytest.raises(DataSourceError) as exc_info:
            _remote(session, backup=BackupStore(str(tmp_path)), fallback=True).get_history("1", "8606")
        assert exc_info.value.status == 500


class TestBackupStore:
    def test_missing_key(self, tmp_path):
        assert BackupStore(str(tmp_path)).get("malla", "x", "y") is None

    def test_unsafe_key_parts(self, tmp_path):
        store = BackupStore(str(tmp_path / "nested"))
        store.put("avance", "../../etc", "8606", data=[{"a": 1}])
        assert store.get("avance", "../../etc", "8606") == [{"a": 1}]
        assert all(p.parent == tmp_path / "nested" for p in (tmp_path / "nested").iterdir())


# ── StubDataSource ────────────────────────────────────────────────────────────

class TestStubDataSource:
    def test_bundled_curriculum(self):
        courses = StubDataSource(DATA_DIR).get_curriculum("8606", "201610")
        codes = [c.code for c in courses]
        assert "DCCB-00107" in codes
        assert len(codes) == len(set(codes))

    def test_other_program_has_no_courses(self):
        assert StubDataSource(DATA_DIR).get_curriculum("9999", "201610") == []

    def test_history_for_known_student(self):
        records = StubDataSource(DATA_DIR).get_history("11188222333", "8606")
        statuses = {r.course: r.status for r in records}
        assert statuses["DCCB-00107"] == "APPROVED"
        assert statuses["DCCB-00106"] == "FAILED"

    def test_unknown_student_gets_sample_history(self):
        records = StubDataSource(DATA_DIR).get_history("nobody", "8606")
        assert records

    def test_scope_columns_optional(self, tmp_path):
        (tmp_path / "malla.csv").write_text("code,credits,level,prereq\nA,6,1,\n", encoding="utf-8")
        source = StubDataSource(str(tmp_path))
        assert [c.code for c in source.get_curriculum("any", "any")] == ["A"]
        assert source.get_history("1", "any") == []


# ── build_data_source ─────────────────────────────────────────────────────────

def _settings(**overrides):
    settings = {
        "use_stubs": False,
        "use_backup_fallback": True,
        "ucn_base_hawaii": "https://hawaii.example",
        "ucn_base_puclaro": "https://puclaro.example",
        "hawaii_auth": "secret",
        "data_path": DATA_DIR,
        "backup_path": "/tmp/backup",
        "request_timeout_s": 4.0,
    }
    settings.update(overrides)
    return settings


class TestBuildDataSource:
    def test_stub_flag(self):
        assert isinstance(build_data_source(_settings(use_stubs=True)), StubDataSource)

    def test_missing_urls_fall_back_to_stubs(self):
        assert isinstance(build_data_source(_settings(ucn_base_puclaro="")), StubDataSource)

    def test_remote(self):
        source = build_data_source(_settings())
        assert isinstance(source, RemoteDataSource)
        assert source.use_backup_fallback is True
        assert source.timeout == 4.0
        assert source.backup.directory == "/tmp/backup"
