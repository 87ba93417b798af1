from sqlalchemy import Column, Integer, String, JSON, ForeignKey, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()

class BattleRecord(Base):
    __tablename__ = "battles"
    id = Column(Integer, primary_key=True, autoincrement=True)
    phase = Column(String, index=True) # BattlePhase value, mirrored for lookups
    creator = Column(String, index=True)
    opponent = Column(String, nullable=True)
    stake = Column(String) # Decimal string, stakes overflow SQLite integers
    state_snapshot = Column(JSON) # Full serialized BattleState

class PlayerPointer(Base):
    __tablename__ = "player_last_battle"
    player = Column(String, primary_key=True)
    battle_id = Column(Integer, ForeignKey("battles.id"))

class Payout(Base):
    __tablename__ = "payouts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    battle_id = Column(Integer, ForeignKey("battles.id"), unique=True)
    winner = Column(String)
    amount = Column(String)


def create_session_factory(database_url: str) -> sessionmaker:
    """Creates the schema if needed and returns a session factory bound to it."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
    else:
        engine = create_engine(database_url)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
