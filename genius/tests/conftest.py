"""
Pytest configuration for the Genius backend tests.

Why: Force AnyIO to use the asyncio backend and reset the module-level web
state (repositories, sessions, gate visits, operations) between tests so no
case observes another case's records.
"""
import pytest

from genius.catalog.records import CandidateFile
from genius.catalog.schemas import ResourceKind
from genius.storage.memory import InMemoryBlobStore, InMemoryDocumentStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _dev_env(monkeypatch: pytest.MonkeyPatch):
    """Run every case in dev mode without Supabase/Keycloak configuration."""
    monkeypatch.setenv("GENIUS_ENV", "dev")
    for var in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "UPLOAD_CHUNK_BYTES"):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_web_state():
    from genius.gate.machine import GateVisitStore
    from genius.web import storage_wiring
    from genius.web.routes import admin, auth

    storage_wiring.set_repositories(None)
    auth.set_session_boundary(None)
    auth.set_gate_visits(GateVisitStore())
    admin.OPERATIONS = admin.OperationRegistry()
    yield
    storage_wiring.set_repositories(None)
    auth.set_session_boundary(None)


@pytest.fixture
def jpeg():
    """Builder for JPEG candidate files: `jpeg(size=2048, name="photo.jpg")`."""

    def _build(size: int = 2048, name: str = "photo.jpg") -> CandidateFile:
        return CandidateFile(filename=name, mime_type="image/jpeg", data=b"\xff" * size)

    return _build


@pytest.fixture
def pdf():
    def _build(size: int = 4096, name: str = "notes.pdf") -> CandidateFile:
        return CandidateFile(filename=name, mime_type="application/pdf", data=b"%" * size)

    return _build


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore(chunk_size=1024)


@pytest.fixture
def repositories(documents, blobs):
    """In-memory repositories for all kinds, installed for the web routes too."""
    from genius.web.storage_wiring import build_repositories, set_repositories

    repos = build_repositories(documents, blobs)
    set_repositories(repos)
    return repos


@pytest.fixture
def teacher_repo(repositories):
    return repositories[ResourceKind.TEACHER]


@pytest.fixture
def material_repo(repositories):
    return repositories[ResourceKind.MATERIAL]
