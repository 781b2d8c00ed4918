"""
Database models for the OTG Sports API.
Tables and columns follow the schema shared with the upstream sync jobs.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Date, Time, Boolean, JSON
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# BIGINT identity in PostgreSQL, INTEGER PRIMARY KEY (rowid alias) in SQLite
BigIntId = BigInteger().with_variant(Integer, "sqlite")


class SoccerMatch(Base):
    """Soccer match reconciled from the Goalserve soccernew feed."""
    __tablename__ = "soccer_matches"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    match_id = Column(BigInteger, unique=True, nullable=False, index=True)  # Goalserve match id
    league_gid = Column(BigInteger)
    league_id = Column(BigInteger, index=True)
    league_name = Column(String(255))
    match_status = Column(String(50), index=True)  # NS, 1H, HT, 2H, FT, ...
    match_start_date = Column(Date, index=True)
    match_start_time = Column(Time)
    h_team_id = Column(BigInteger)
    a_team_id = Column(BigInteger)
    h_team_name = Column(String(255))
    a_team_name = Column(String(255))
    h_team_goals = Column(Integer, nullable=True)  # NULL until the feed reports a score
    a_team_goals = Column(Integer, nullable=True)
    ht_score = Column(String(10), nullable=True)  # "1-0"
    ft_score = Column(String(10), nullable=True)
    events = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class BasketballMatch(Base):
    """Basketball match reconciled from the Goalserve bsktbl feed."""
    __tablename__ = "basketball_matches"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    match_id = Column(BigInteger, unique=True, nullable=False, index=True)
    league_gid = Column(BigInteger)
    league_id = Column(BigInteger, index=True)
    league_name = Column(String(255))
    file_group = Column(String(100))
    match_status = Column(String(50), index=True)  # Not Started, Q1..Q4, OT, Final, ...
    match_date = Column(Date, index=True)
    match_time = Column(Time)
    timer = Column(String(20), nullable=True)
    h_team_id = Column(BigInteger)
    h_team_name = Column(String(255))
    h_team_score = Column(Integer, nullable=True)
    h_team_q1 = Column(Integer, nullable=True)
    h_team_q2 = Column(Integer, nullable=True)
    h_team_q3 = Column(Integer, nullable=True)
    h_team_q4 = Column(Integer, nullable=True)
    h_team_ot = Column(Integer, nullable=True)
    a_team_id = Column(BigInteger)
    a_team_name = Column(String(255))
    a_team_score = Column(Integer, nullable=True)
    a_team_q1 = Column(Integer, nullable=True)
    a_team_q2 = Column(Integer, nullable=True)
    a_team_q3 = Column(Integer, nullable=True)
    a_team_q4 = Column(Integer, nullable=True)
    a_team_ot = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class ApiKey(Base):
    """
    Tenant credential.

    Only the SHA-256 hash of the key is stored; the plaintext is shown once
    when the key is created.
    """
    __tablename__ = "api_keys"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    key_hash = Column(String(64), unique=True, nullable=False, index=True)
    key_prefix = Column(String(16), nullable=False)  # "sk_live_xxxx" for display
    name = Column(String(255), nullable=False)
    sports = Column(JSON, nullable=False)  # ["soccer", "basketball"] or ["*"]
    rate_limit = Column(Integer, nullable=False, default=100)  # requests per minute
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_used_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)

    def allows_sport(self, sport: str) -> bool:
        """Whether this key's scope covers the given sport."""
        scopes = self.sports or []
        return "*" in scopes or sport in scopes

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now
