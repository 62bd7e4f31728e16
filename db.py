import os
import json
import logging
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import (
    create_engine, Column, Integer, String, Float, Text, Boolean, func
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


class Attempt(Base):
    __tablename__ = "attempts"
    id             = Column(Integer, primary_key=True)
    timestamp      = Column(String,  nullable=False)
    sentence_index = Column(Integer, nullable=False)
    sentence       = Column(String,  nullable=False)
    transcript     = Column(String,  nullable=True)
    # JSON list of clean target words judged wrong
    struggles      = Column(Text,    nullable=True)
    struggle_count = Column(Integer, nullable=False, default=0)
    success        = Column(Boolean, nullable=False, default=False)
    wer            = Column(Float,   nullable=True)
    audio_path     = Column(String,  nullable=True)


def get_engine(db_path: str = "sessions.db"):
    if db_path == ":memory:":
        return create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    full = os.path.abspath(db_path)
    return create_engine(f"sqlite:///{full}", echo=False)


def init_db(engine=None):
    if engine is None:
        engine = get_engine()
    Base.metadata.create_all(engine)


def get_session(db_path: str = "sessions.db"):
    engine = get_engine(db_path)
    init_db(engine)
    return sessionmaker(bind=engine)()


def add_attempt(
    db,
    sentence_index: int,
    sentence: str,
    transcript: Optional[str],
    struggles: List[str],
    wer: Optional[float] = None,
    audio_path: Optional[str] = None,
) -> Attempt:
    ts = datetime.now().isoformat(timespec="seconds")
    attempt = Attempt(
        timestamp=ts,
        sentence_index=sentence_index,
        sentence=sentence,
        transcript=transcript,
        struggles=json.dumps(list(struggles)),
        struggle_count=len(struggles),
        success=not struggles,
        wer=wer,
        audio_path=audio_path,
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    return attempt


def get_all_attempts(db, limit: Optional[int] = None) -> List[Attempt]:
    """Newest first."""
    query = db.query(Attempt).order_by(Attempt.timestamp.desc(), Attempt.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_mastery_summary(db) -> Dict[str, int]:
    attempts = db.query(func.count(Attempt.id)).scalar() or 0
    successes = db.query(func.count(Attempt.id)).filter(Attempt.success.is_(True)).scalar() or 0
    mastered = (
        db.query(func.count(func.distinct(Attempt.sentence)))
        .filter(Attempt.success.is_(True))
        .scalar()
        or 0
    )
    return {"attempts": attempts, "successes": successes, "sentences_mastered": mastered}


def get_struggle_words(db, limit: int = 20) -> List[Tuple[str, int]]:
    """Most frequently missed words across all attempts."""
    tally: Counter = Counter()
    for (raw,) in db.query(Attempt.struggles).filter(Attempt.struggle_count > 0):
        try:
            tally.update(json.loads(raw or "[]"))
        except ValueError:
            logger.warning("Skipping malformed struggle list: %r", raw)
    return tally.most_common(limit)


def get_daily_progress(db) -> List[Tuple[str, int, int]]:
    """(YYYY-MM-DD, attempts, successes) per day, oldest first."""
    days: Dict[str, List[int]] = {}
    for attempt in db.query(Attempt).order_by(Attempt.timestamp.asc()):
        day = attempt.timestamp[:10]
        counts = days.setdefault(day, [0, 0])
        counts[0] += 1
        if attempt.success:
            counts[1] += 1
    return [(day, a, s) for day, (a, s) in days.items()]


def delete_attempt(db, attempt_id: int) -> None:
    attempt = db.get(Attempt, attempt_id)
    if not attempt:
        return
    # delete the recording if no other attempt references it
    if attempt.audio_path:
        exists = db.query(Attempt).filter(
            Attempt.audio_path == attempt.audio_path,
            Attempt.id != attempt.id
        ).first()
        if not exists:
            try:
                os.remove(attempt.audio_path)
            except OSError as e:
                logger.warning("Could not remove %s: %s", attempt.audio_path, e)
    db.delete(attempt)
    db.commit()
