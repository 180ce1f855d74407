import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

NOW = datetime(2024, 5, 20, 12, 0, 0)


def fixed_now():
    return NOW


def make_store(tmp_path: Path, name: str = "accountease.db", store_cls=None):
    from accountease.repositories.sqlite_store import SqliteDocumentStore

    store = (store_cls or SqliteDocumentStore)(tmp_path / name)
    store.init_db()
    return store


def signed_in(owner_id: str = "owner-1"):
    from accountease.services.auth_service import AuthSession

    return AuthSession(owner_id=owner_id)
