from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
ACCESS_STATUSES = (STATUS_PENDING, STATUS_APPROVED)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    school_name = Column(String)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    exams = relationship("Exam", back_populates="user")


class AccessRequest(Base):
    __tablename__ = "access_requests"
    id = Column(Integer, primary_key=True)
    email = Column(String, index=True, nullable=False)
    school_name = Column(Text)  # free-text description composed by the request form
    status = Column(String, default=STATUS_PENDING)  # pending, approved
    created_at = Column(DateTime, default=datetime.utcnow)
    reviewed_at = Column(DateTime)


class Exam(Base):
    __tablename__ = "exams"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"))
    title = Column(String)
    taxonomy = Column(String)  # RTTI, KTI
    configuration = Column(JSON)  # ExamConfiguration as submitted
    content = Column(JSON)  # GeneratedExam as returned by the provider
    created_at = Column(DateTime, default=datetime.utcnow)
    user = relationship("User", back_populates="exams")


class FeedbackMessage(Base):
    __tablename__ = "feedback_messages"
    id = Column(Integer, primary_key=True)
    name = Column(String)
    message = Column(Text)
    delivered = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)


def get_engine(db_path=None, url=None):
    """Returns a SQLAlchemy engine for a SQLite path or a full database URL.

    SQLite connections may be used from the approval-lookup worker thread.
    """
    if url:
        return create_engine(url)
    return create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})


def init_db(engine):
    """Creates all tables in the database."""
    Base.metadata.create_all(engine)


def get_session(engine):
    """Returns a new session."""
    Session = sessionmaker(bind=engine)
    return Session()
