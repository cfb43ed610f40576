from pydantic import BaseModel
import os

class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "")
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    jwt_expires_min: int = int(os.getenv("JWT_EXPIRES_MIN", "120"))
    ticket_number_prefix: str = os.getenv("TICKET_NUMBER_PREFIX", "TKT")
    # SLA 기본값 (정책에 값이 없을 때 사용)
    default_approval_sla_hours: int = int(os.getenv("DEFAULT_APPROVAL_SLA_HOURS", "24"))
    default_processing_sla_hours: int = int(os.getenv("DEFAULT_PROCESSING_SLA_HOURS", "48"))
    sla_at_risk_hours: int = int(os.getenv("SLA_AT_RISK_HOURS", "4"))
    ticket_list_cache_ttl_seconds: int = int(os.getenv("TICKET_LIST_CACHE_TTL_SECONDS", "30"))
    ticket_list_cache_max_entries: int = int(os.getenv("TICKET_LIST_CACHE_MAX_ENTRIES", "256"))
    notifications_enabled: bool = os.getenv("NOTIFICATIONS_ENABLED", "true").lower() == "true"
    audit_enabled: bool = os.getenv("AUDIT_ENABLED", "true").lower() == "true"

settings = Settings()
