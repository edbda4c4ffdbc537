"""SQLite storage layer for quadra.

Provides ORM models and repository pattern for data persistence. Stat
counters are never rewritten from memory: delta batches become
``counter = counter + :n`` UPDATE statements committed in one transaction.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    update,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import NullPool

from quadra.models import (
    COUNTER_FIELDS,
    Confronto,
    ConfrontoStatus,
    Entrant,
    RoundType,
    Scope,
    Seed,
    Stage,
    StageFormat,
    StatDelta,
    StatRecord,
)
from quadra.validation import UnknownStatRecord

Base = declarative_base()

# Stage-global records are stored with an empty group name so the unique
# constraint also covers them (NULLs never collide in SQLite).
NO_GROUP = ""


def _to_db_group(group_name: Optional[str]) -> str:
    return NO_GROUP if group_name is None else group_name


def _from_db_group(group_name: str) -> Optional[str]:
    return None if group_name == NO_GROUP else group_name


def _seed_to_dict(seed: Optional[Seed]) -> Optional[dict]:
    if seed is None:
        return None
    return {"id": seed.id, "name": seed.name, "origin": seed.origin, "member_ids": list(seed.member_ids)}


def _seed_from_dict(item: Optional[dict]) -> Optional[Seed]:
    if item is None:
        return None
    return Seed(id=item["id"], name=item["name"], origin=item["origin"], member_ids=tuple(item["member_ids"]))


def _confronto_to_dict(confronto: Confronto) -> dict:
    return {
        "ordinal": confronto.ordinal,
        "round_type": confronto.round_type.value,
        "side_a": _seed_to_dict(confronto.side_a),
        "side_b": _seed_to_dict(confronto.side_b),
        "status": confronto.status.value,
        "winner": _seed_to_dict(confronto.winner),
        "games_a": confronto.games_a,
        "games_b": confronto.games_b,
    }


def _confronto_from_dict(item: dict) -> Confronto:
    return Confronto(
        ordinal=item["ordinal"],
        round_type=RoundType(item["round_type"]),
        side_a=_seed_from_dict(item["side_a"]),
        side_b=_seed_from_dict(item["side_b"]),
        status=ConfrontoStatus(item["status"]),
        winner=_seed_from_dict(item["winner"]),
        games_a=item["games_a"],
        games_b=item["games_b"],
    )


# ============================================================================
# ORM Models
# ============================================================================


class EntrantORM(Base):
    """Entrant table."""

    __tablename__ = "entrants"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    tier = Column(String(20), nullable=True)
    category = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class StageORM(Base):
    """Stage table.

    counts_toward_ranking is nullable: rows written before the column existed
    hold NULL and count toward the ranking.
    """

    __tablename__ = "stages"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    format = Column(String(20), nullable=False, default=StageFormat.GROUPED.value)
    counts_toward_ranking = Column(Boolean, nullable=True)
    group_phase_closed = Column(Boolean, nullable=False, default=False)
    # Bracket rounds as JSON array of arrays of confrontos, NULL until seeded
    bracket_json = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    stat_records = relationship("StatRecordORM", back_populates="stage", cascade="all, delete-orphan")
    ledger_entries = relationship("LedgerEntryORM", back_populates="stage", cascade="all, delete-orphan")

    @property
    def bracket(self) -> list[list[Confronto]]:
        """Get bracket rounds from JSON, first round first."""
        if not self.bracket_json:
            return []
        return [[_confronto_from_dict(item) for item in rnd] for rnd in json.loads(self.bracket_json)]

    @bracket.setter
    def bracket(self, rounds: Optional[list[list[Confronto]]]):
        """Set bracket rounds as JSON (empty or None clears the bracket)."""
        self.bracket_json = (
            json.dumps([[_confronto_to_dict(c) for c in rnd] for rnd in rounds]) if rounds else None
        )


class StatRecordORM(Base):
    """Stat record table, one row per (entrant, stage, group)."""

    __tablename__ = "stat_records"
    __table_args__ = (UniqueConstraint("entrant_id", "stage_id", "group_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    entrant_id = Column(String(50), nullable=False)
    stage_id = Column(String(50), ForeignKey("stages.id"), nullable=False)
    group_name = Column(String(20), nullable=False, default=NO_GROUP)

    # Counters
    matches_played = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    points = Column(Integer, nullable=False, default=0)
    sets_won = Column(Integer, nullable=False, default=0)
    sets_lost = Column(Integer, nullable=False, default=0)
    games_won = Column(Integer, nullable=False, default=0)
    games_lost = Column(Integer, nullable=False, default=0)

    # Ranking annotations
    rank_position = Column(Integer, nullable=True)
    qualified = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    stage = relationship("StageORM", back_populates="stat_records")

    def to_domain(self) -> StatRecord:
        """Convert to a StatRecord domain model."""
        return StatRecord(
            entrant_id=self.entrant_id,
            stage_id=self.stage_id,
            group_name=_from_db_group(self.group_name),
            rank_position=self.rank_position,
            qualified=self.qualified,
            **{name: getattr(self, name) for name in COUNTER_FIELDS},
        )


class LedgerEntryORM(Base):
    """Deltas currently applied for a fixture, needed to revert it later."""

    __tablename__ = "ledger_entries"
    __table_args__ = (UniqueConstraint("stage_id", "fixture_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    stage_id = Column(String(50), ForeignKey("stages.id"), nullable=False)
    fixture_id = Column(String(50), nullable=False)
    # Store deltas as JSON array
    deltas_json = Column(Text, nullable=False, default="[]")
    applied_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    stage = relationship("StageORM", back_populates="ledger_entries")

    @property
    def deltas(self) -> tuple[StatDelta, ...]:
        """Get deltas from JSON."""
        return tuple(
            StatDelta(
                entrant_id=item["entrant_id"],
                fixture_id=self.fixture_id,
                scope=Scope(self.stage_id, item.get("group_name")),
                **{name: item[name] for name in COUNTER_FIELDS},
            )
            for item in json.loads(self.deltas_json)
        )

    @deltas.setter
    def deltas(self, value: Iterable[StatDelta]):
        """Set deltas as JSON."""
        self.deltas_json = json.dumps([
            {"entrant_id": d.entrant_id, "group_name": d.scope.group_name, **d.increments()}
            for d in value
        ])


class DatabaseManager:
    """Manages SQLite database connection and session."""

    def __init__(self, db_path: str = ".quadra/quadra.sqlite"):
        """Initialize database manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Use NullPool for SQLite to avoid connection pool issues
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            poolclass=NullPool,
            connect_args={"check_same_thread": False}
        )
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_tables(self):
        """Create all tables in the database."""
        Base.metadata.create_all(self.engine)

    def get_session(self):
        """Get a new database session."""
        return self.SessionLocal()


# ============================================================================
# Repository Pattern
# ============================================================================


class EntrantRepository:
    """Repository for Entrant operations."""

    def __init__(self, session):
        self.session = session

    def upsert(self, entrant: Entrant) -> EntrantORM:
        """Create an entrant or update its display fields."""
        entrant_orm = self.session.get(EntrantORM, entrant.id)
        if entrant_orm is None:
            entrant_orm = EntrantORM(id=entrant.id)
            self.session.add(entrant_orm)
        entrant_orm.name = entrant.name
        entrant_orm.tier = entrant.tier
        entrant_orm.category = entrant.category
        self.session.commit()
        return entrant_orm

    def get_all(self) -> list[Entrant]:
        """Get all entrants ordered by id."""
        return [
            Entrant(id=e.id, name=e.name, tier=e.tier, category=e.category)
            for e in self.session.query(EntrantORM).order_by(EntrantORM.id).all()
        ]

    def names(self) -> dict[str, str]:
        """Map entrant id to display name."""
        return {e.id: e.name for e in self.session.query(EntrantORM).all()}


class StageRepository:
    """Repository for Stage operations."""

    def __init__(self, session):
        self.session = session

    @staticmethod
    def _to_domain(stage_orm: StageORM) -> Stage:
        return Stage(
            id=stage_orm.id,
            name=stage_orm.name,
            format=StageFormat(stage_orm.format),
            counts_toward_ranking=stage_orm.counts_toward_ranking,
        )

    def create(self, stage: Stage) -> StageORM:
        """Create a new stage in the database."""
        stage_orm = StageORM(
            id=stage.id,
            name=stage.name,
            format=stage.format.value,
            counts_toward_ranking=stage.counts_toward_ranking,
            group_phase_closed=False,
        )
        self.session.add(stage_orm)
        self.session.commit()
        return stage_orm

    def get_by_id(self, stage_id: str) -> Optional[Stage]:
        """Get stage by ID, None if not found."""
        stage_orm = self.session.get(StageORM, stage_id)
        return self._to_domain(stage_orm) if stage_orm else None

    def get_all(self) -> list[Stage]:
        """Get all stages in creation order."""
        return [
            self._to_domain(s)
            for s in self.session.query(StageORM).order_by(StageORM.created_at, StageORM.id).all()
        ]

    def is_group_phase_closed(self, stage_id: str) -> bool:
        stage_orm = self.session.get(StageORM, stage_id)
        return bool(stage_orm and stage_orm.group_phase_closed)

    def set_group_phase_closed(self, stage_id: str, closed: bool = True) -> bool:
        """Open or close the group phase. Returns False if the stage is unknown."""
        stage_orm = self.session.get(StageORM, stage_id)
        if not stage_orm:
            return False
        stage_orm.group_phase_closed = closed
        self.session.commit()
        return True

    def get_bracket(self, stage_id: str) -> list[list[Confronto]]:
        """Bracket rounds of a stage, empty if it has none."""
        stage_orm = self.session.get(StageORM, stage_id)
        return stage_orm.bracket if stage_orm else []

    def save_bracket(self, stage_id: str, rounds: Optional[list[list[Confronto]]], commit: bool = True) -> bool:
        """Store the bracket rounds (None clears them). Returns False if the stage is unknown."""
        stage_orm = self.session.get(StageORM, stage_id)
        if not stage_orm:
            return False
        stage_orm.bracket = rounds
        if commit:
            self.session.commit()
        return True

    def delete(self, stage_id: str) -> bool:
        """Delete a stage with its records and ledger entries."""
        stage_orm = self.session.get(StageORM, stage_id)
        if not stage_orm:
            return False
        self.session.delete(stage_orm)
        self.session.commit()
        return True


class StatRecordRepository:
    """Repository for StatRecord operations."""

    def __init__(self, session):
        self.session = session

    def create(self, record: StatRecord) -> StatRecordORM:
        """Create a new stat record in the database."""
        record_orm = StatRecordORM(
            entrant_id=record.entrant_id,
            stage_id=record.stage_id,
            group_name=_to_db_group(record.group_name),
            rank_position=record.rank_position,
            qualified=record.qualified,
            **record.counters(),
        )
        self.session.add(record_orm)
        self.session.commit()
        return record_orm

    def get(self, entrant_id: str, scope: Scope) -> Optional[StatRecord]:
        """Get one record, None if not found."""
        record_orm = (
            self.session.query(StatRecordORM)
            .filter(
                StatRecordORM.entrant_id == entrant_id,
                StatRecordORM.stage_id == scope.stage_id,
                StatRecordORM.group_name == _to_db_group(scope.group_name),
            )
            .first()
        )
        return record_orm.to_domain() if record_orm else None

    def get_by_stage(self, stage_id: str, group_name: Optional[str] = None) -> list[StatRecord]:
        """Records of a group, or the stage-global records when group_name is None."""
        return [
            r.to_domain()
            for r in self.session.query(StatRecordORM)
            .filter(
                StatRecordORM.stage_id == stage_id,
                StatRecordORM.group_name == _to_db_group(group_name),
            )
            .order_by(StatRecordORM.id)
            .all()
        ]

    def get_all_by_stage(self, stage_id: str) -> list[StatRecord]:
        """Every record of a stage (group and stage-global)."""
        return [
            r.to_domain()
            for r in self.session.query(StatRecordORM)
            .filter(StatRecordORM.stage_id == stage_id)
            .order_by(StatRecordORM.id)
            .all()
        ]

    def get_all(self) -> list[StatRecord]:
        return [r.to_domain() for r in self.session.query(StatRecordORM).order_by(StatRecordORM.id).all()]

    def group_names(self, stage_id: str) -> list[str]:
        """Names of the groups of a stage."""
        rows = (
            self.session.query(StatRecordORM.group_name)
            .filter(StatRecordORM.stage_id == stage_id, StatRecordORM.group_name != NO_GROUP)
            .distinct()
            .all()
        )
        return sorted(row[0] for row in rows)

    def apply_deltas(self, deltas: Iterable[StatDelta], commit: bool = True) -> int:
        """Add deltas to their records as atomic column increments.

        Group deltas also update the stage-global record, like the ledger.

        Args:
            deltas: Deltas to fold (negated deltas revert)
            commit: Commit when done (False lets the caller join more writes
                to the same transaction)

        Returns:
            Number of rows updated

        Raises:
            UnknownStatRecord: If a target record does not exist (nothing is kept)
        """
        updated = 0
        try:
            for delta in deltas:
                values = {
                    name: getattr(StatRecordORM, name) + value
                    for name, value in delta.increments().items()
                    if value
                }
                if not values:
                    continue
                for target in delta.targets():
                    result = self.session.execute(
                        update(StatRecordORM)
                        .where(
                            StatRecordORM.entrant_id == delta.entrant_id,
                            StatRecordORM.stage_id == target.stage_id,
                            StatRecordORM.group_name == _to_db_group(target.group_name),
                        )
                        .values(**values)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount == 0:
                        raise UnknownStatRecord(
                            f"Fixture {delta.fixture_id}: no record for entrant "
                            f"{delta.entrant_id} in {target}",
                            field=delta.entrant_id,
                        )
                    updated += result.rowcount
            if commit:
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return updated

    def update_rankings(self, records: Iterable[StatRecord]) -> None:
        """Store rank positions and qualified flags."""
        for record in records:
            self.session.execute(
                update(StatRecordORM)
                .where(
                    StatRecordORM.entrant_id == record.entrant_id,
                    StatRecordORM.stage_id == record.stage_id,
                    StatRecordORM.group_name == _to_db_group(record.group_name),
                )
                .values(rank_position=record.rank_position, qualified=record.qualified)
                .execution_options(synchronize_session=False)
            )
        self.session.commit()

    def clear_qualification(self, stage_id: str, commit: bool = True) -> int:
        """Unmark every qualified record of a stage. Returns the rows changed."""
        result = self.session.execute(
            update(StatRecordORM)
            .where(StatRecordORM.stage_id == stage_id, StatRecordORM.qualified.is_(True))
            .values(qualified=False)
            .execution_options(synchronize_session=False)
        )
        if commit:
            self.session.commit()
        return result.rowcount


class LedgerEntryRepository:
    """Repository for applied-result journal operations."""

    def __init__(self, session):
        self.session = session

    def save(self, stage_id: str, fixture_id: str, deltas: Iterable[StatDelta], commit: bool = True) -> LedgerEntryORM:
        """Store (or replace) the deltas applied for a fixture."""
        entry = (
            self.session.query(LedgerEntryORM)
            .filter(LedgerEntryORM.stage_id == stage_id, LedgerEntryORM.fixture_id == fixture_id)
            .first()
        )
        if entry is None:
            entry = LedgerEntryORM(stage_id=stage_id, fixture_id=fixture_id)
            self.session.add(entry)
        entry.deltas = deltas
        if commit:
            self.session.commit()
        return entry

    def delete(self, stage_id: str, fixture_id: str, commit: bool = True) -> bool:
        """Remove the journal entry of a reverted fixture."""
        count = (
            self.session.query(LedgerEntryORM)
            .filter(LedgerEntryORM.stage_id == stage_id, LedgerEntryORM.fixture_id == fixture_id)
            .delete()
        )
        if commit:
            self.session.commit()
        return count > 0

    def load(self, stage_id: str) -> dict[tuple[str, str], tuple[StatDelta, ...]]:
        """Applied deltas of a stage keyed by (stage_id, fixture_id)."""
        return {
            (entry.stage_id, entry.fixture_id): entry.deltas
            for entry in self.session.query(LedgerEntryORM)
            .filter(LedgerEntryORM.stage_id == stage_id)
            .all()
        }
