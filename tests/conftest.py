import pytest
from flask_jwt_extended import create_access_token

from app import create_app, db
from app.models import Institute, Teacher, TestPaper


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("JWT_SECRET_KEY", "test-jwt-secret-key-at-least-32-bytes-long")
    monkeypatch.setenv("SECRET_KEY", "test-secret-key")
    monkeypatch.setenv("ARTIFACT_ROOT", str(tmp_path / "artifacts"))
    monkeypatch.setenv("REOPEN_DELETES_ARTIFACTS", "true")

    app = create_app(
        "default",
        db_uri_override=f"sqlite:///{tmp_path / 'papers_test.db'}",
    )
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def artifact_root(app, tmp_path):
    return tmp_path / "artifacts"


def create_institute(name: str) -> Institute:
    institute = Institute(name=name)
    db.session.add(institute)
    db.session.commit()
    return institute


def create_teacher(institute: Institute, email: str, password: str = "pw1234") -> Teacher:
    teacher = Teacher(institute_id=institute.id, email=email)
    teacher.set_password(password)
    db.session.add(teacher)
    db.session.commit()
    return teacher


def create_paper(institute: Institute, **fields) -> TestPaper:
    fields.setdefault("title", "Physics Mock Test")
    fields.setdefault("status", TestPaper.STATUS_REVIEW)
    paper = TestPaper(institute_id=institute.id, **fields)
    db.session.add(paper)
    db.session.commit()
    return paper


def auth_header(teacher: Teacher) -> dict[str, str]:
    token = create_access_token(identity=teacher.id)
    return {"Authorization": f"Bearer {token}"}
