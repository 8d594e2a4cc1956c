"""SQLAlchemy models: institutes, teachers and test papers."""

import uuid
from datetime import datetime, timezone

from werkzeug.security import check_password_hash, generate_password_hash

from app import db


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Institute(db.Model):
    """테넌트 단위 (학원)"""

    __tablename__ = "institutes"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    teachers = db.relationship("Teacher", back_populates="institute", lazy=True)

    def __repr__(self):
        return f"<Institute {self.name}>"


class Teacher(db.Model):
    __tablename__ = "teachers"

    ROLE_ADMIN = "admin"
    ROLE_TEACHER = "teacher"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    institute_id = db.Column(
        db.String(36), db.ForeignKey("institutes.id"), nullable=False, index=True
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(200), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_TEACHER)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    institute = db.relationship("Institute", back_populates="teachers")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str | None) -> bool:
        if not self.password_hash or not password:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    def __repr__(self):
        return f"<Teacher {self.email}>"


class TestPaper(db.Model):
    """시험지 레코드

    status/pdf_url/answer_key_url/finalized_at 은 paper_lifecycle 서비스만 변경한다.
    """

    __tablename__ = "test_papers"
    # Not a pytest test class.
    __test__ = False

    STATUS_DRAFT = "draft"
    STATUS_REVIEW = "review"
    STATUS_FINALIZED = "finalized"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    institute_id = db.Column(
        db.String(36), db.ForeignKey("institutes.id"), nullable=False, index=True
    )
    created_by = db.Column(db.String(36), db.ForeignKey("teachers.id"), nullable=True)
    title = db.Column(db.String(255), nullable=False, default="")
    status = db.Column(
        db.String(20), nullable=False, default=STATUS_DRAFT, index=True
    )
    pdf_url = db.Column(db.Text, nullable=True)
    answer_key_url = db.Column(db.Text, nullable=True)
    finalized_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('draft', 'review', 'finalized')",
            name="ck_test_papers_status",
        ),
    )

    @property
    def has_artifacts(self) -> bool:
        return bool(self.pdf_url or self.answer_key_url)

    @property
    def is_consistent(self) -> bool:
        """Artifacts and finalized_at may only be set while finalized."""
        if self.status == self.STATUS_FINALIZED:
            return True
        return not self.has_artifacts and self.finalized_at is None

    def __repr__(self):
        return f"<TestPaper {self.id} {self.status}>"
