"""
Unified configuration module
- config file:    config/shelfscan_config.json (tunable parameters)
- local override: config/shelfscan_config.local.json (private, not committed)
- environment variables take precedence for secrets (API keys etc.)
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(__file__).parent / "shelfscan_config.json"
_LOCAL_CONFIG_PATH = Path(__file__).parent / "shelfscan_config.local.json"


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


_RAW_CONFIG: Dict[str, Any] = _load_json(_CONFIG_PATH)
if _LOCAL_CONFIG_PATH.exists():
    _RAW_CONFIG = _deep_merge(_RAW_CONFIG, _load_json(_LOCAL_CONFIG_PATH))


def _section(name: str) -> Dict[str, Any]:
    return (_RAW_CONFIG.get(name) or {})


@dataclass
class ApiSettings:
    """HTTP server"""
    host: str = os.getenv("API_HOST", "127.0.0.1")
    port: int = int(os.getenv("API_PORT", "5000"))


@dataclass
class AuthSettings:
    """Bearer token verification. Tokens are issued by the identity provider;
    secret_key must match the key it signs with."""
    secret_key: str = "change-me-in-local"
    algorithm: str = "HS256"
    issuer: Optional[str] = None
    audience: Optional[str] = None
    token_expire_hours: float = 24.0


@dataclass
class VisionSettings:
    """OpenAI-compatible vision model used to read book spines"""
    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o"
    timeout_seconds: int = 120
    max_tokens: int = 2000


@dataclass
class CatalogSettings:
    """Google Books catalog lookups"""
    api_key: str = ""
    base_url: str = "https://www.googleapis.com/books/v1"
    max_results: int = 5
    timeout_seconds: int = 15
    max_parallel: int = 4  # concurrent catalog searches within one batch


@dataclass
class QuotaSettings:
    monthly_limit: int = 50
    # re-check the quota at write time under a lock/transaction
    strict: bool = False


@dataclass
class RateLimitSettings:
    """Per-IP sliding windows"""
    api_limit: int = 100
    api_window_seconds: int = 15 * 60
    upload_limit: int = 5
    upload_window_seconds: int = 60 * 60


@dataclass
class UploadSettings:
    max_image_bytes: int = 50 * 1024 * 1024


@dataclass
class StorageSettings:
    backend: str = "sql"  # sql | memory


@dataclass
class BillingSettings:
    webhook_secret: str = ""
    enforce_subscription: bool = True


@dataclass
class PathSettings:
    base: Path = field(default_factory=lambda: Path(__file__).parent.parent)

    @property
    def data(self) -> Path:
        return self.base / "data"

    @property
    def logs(self) -> Path:
        return self.base / "logs"

    def ensure_dirs(self):
        for p in [self.data, self.logs]:
            p.mkdir(parents=True, exist_ok=True)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in ("1", "true", "yes")


class Settings:
    def __init__(self):
        self.env = os.getenv("SHELFSCAN_ENV", "dev")
        a = _section("api")
        self.api = ApiSettings(
            host=str(a.get("host", os.getenv("API_HOST", "127.0.0.1"))),
            port=int(a.get("port", os.getenv("API_PORT", "5000"))),
        )
        au = _section("auth")
        self.auth = AuthSettings(
            secret_key=os.getenv("SHELFSCAN_AUTH_SECRET") or str(au.get("secret_key", "change-me-in-local")),
            algorithm=str(au.get("algorithm", "HS256")),
            issuer=au.get("issuer") or None,
            audience=au.get("audience") or None,
            token_expire_hours=float(au.get("token_expire_hours", 24)),
        )
        v = _section("vision")
        self.vision = VisionSettings(
            api_key=(os.getenv("OPENAI_API_KEY") or v.get("api_key") or "").strip(),
            base_url=(v.get("base_url") or "https://api.openai.com/v1").strip(),
            model=(os.getenv("VISION_MODEL") or v.get("model") or "gpt-4o").strip(),
            timeout_seconds=int(v.get("timeout_seconds", 120)),
            max_tokens=int(v.get("max_tokens", 2000)),
        )
        c = _section("catalog")
        self.catalog = CatalogSettings(
            api_key=(os.getenv("GOOGLE_BOOKS_API_KEY") or c.get("api_key") or "").strip(),
            base_url=(c.get("base_url") or "https://www.googleapis.com/books/v1").strip(),
            max_results=min(int(c.get("max_results", 5)), 40),
            timeout_seconds=int(c.get("timeout_seconds", 15)),
            max_parallel=max(1, int(c.get("max_parallel", 4))),
        )
        q = _section("quota")
        self.quota = QuotaSettings(
            monthly_limit=int(os.getenv("SHELFSCAN_MONTHLY_LIMIT") or q.get("monthly_limit", 50)),
            strict=_env_bool("SHELFSCAN_STRICT_QUOTA", bool(q.get("strict", False))),
        )
        r = _section("rate_limit")
        self.rate_limit = RateLimitSettings(
            api_limit=int(r.get("api_limit", 100)),
            api_window_seconds=int(r.get("api_window_seconds", 15 * 60)),
            upload_limit=int(r.get("upload_limit", 5)),
            upload_window_seconds=int(r.get("upload_window_seconds", 60 * 60)),
        )
        u = _section("upload")
        self.upload = UploadSettings(
            max_image_bytes=int(u.get("max_image_bytes", 50 * 1024 * 1024)),
        )
        st = _section("storage")
        self.storage = StorageSettings(
            backend=(os.getenv("SHELFSCAN_STORAGE") or st.get("backend") or "sql").strip().lower(),
        )
        b = _section("billing")
        self.billing = BillingSettings(
            webhook_secret=(os.getenv("BILLING_WEBHOOK_SECRET") or b.get("webhook_secret") or "").strip(),
            enforce_subscription=_env_bool(
                "SHELFSCAN_ENFORCE_SUBSCRIPTION", bool(b.get("enforce_subscription", True))
            ),
        )
        self.path = PathSettings()

    @property
    def is_prod(self) -> bool:
        return self.env == "prod"

    def print_info(self):
        print(f"""
========================================
  shelfscan book catalog API
========================================
  env:          {self.env}
  storage:      {self.storage.backend}
  vision model: {self.vision.model}
  quota:        {self.quota.monthly_limit}/month (strict={self.quota.strict})
  listen:       {self.api.host}:{self.api.port}
========================================
        """)


# global singleton
settings = Settings()
