"""
Configuration management for the SERPAVI rent reference scraper.
Handles environment variables and application settings.
"""
import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))
    DEBUG: bool = _env_bool("DEBUG", "false")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Target application
    TARGET_URL: str = os.getenv("TARGET_URL", "https://serpavi.mivau.gob.es/")
    LANDING_URL: str = os.getenv(
        "LANDING_URL",
        "https://www.mivau.gob.es/vivienda/alquila-bien-es-tu-derecho/serpavi",
    )
    TARGET_DOMAIN: str = os.getenv("TARGET_DOMAIN", "serpavi.mivau.gob.es")

    # Browser
    BROWSER_HEADLESS: bool = _env_bool("BROWSER_HEADLESS", "true")
    BROWSER_LOCALE: str = os.getenv("BROWSER_LOCALE", "es-ES")
    BROWSER_USER_AGENT: str = os.getenv(
        "BROWSER_USER_AGENT",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124 Safari/537.36",
    )
    VIEWPORT_WIDTH: int = int(os.getenv("VIEWPORT_WIDTH", "1280"))
    VIEWPORT_HEIGHT: int = int(os.getenv("VIEWPORT_HEIGHT", "900"))

    # Timeouts (seconds)
    GLOBAL_TIMEOUT: float = float(os.getenv("GLOBAL_TIMEOUT", "65"))
    NAVIGATION_TIMEOUT: float = float(os.getenv("NAVIGATION_TIMEOUT", "25"))
    STEP_TIMEOUT: float = float(os.getenv("STEP_TIMEOUT", "15"))
    GOTO_TIMEOUT: float = float(os.getenv("GOTO_TIMEOUT", "20"))
    POPUP_TIMEOUT: float = float(os.getenv("POPUP_TIMEOUT", "7"))
    SUGGESTION_TIMEOUT: float = float(os.getenv("SUGGESTION_TIMEOUT", "4"))
    CONFIRM_TIMEOUT: float = float(os.getenv("CONFIRM_TIMEOUT", "8"))
    ATTRIBUTE_TIMEOUT: float = float(os.getenv("ATTRIBUTE_TIMEOUT", "4"))
    SETTLE_DELAY: float = float(os.getenv("SETTLE_DELAY", "1.5"))
    DIAG_TIMEOUT: float = float(os.getenv("DIAG_TIMEOUT", "15"))

    # Search
    MAX_SUGGESTIONS: int = int(os.getenv("MAX_SUGGESTIONS", "5"))

    # Plausibility bounds (EUR, EUR/m2, m2)
    RENT_MIN: float = float(os.getenv("RENT_MIN", "100"))
    RENT_MAX: float = float(os.getenv("RENT_MAX", "20000"))
    PER_AREA_MIN: float = float(os.getenv("PER_AREA_MIN", "1"))
    PER_AREA_MAX: float = float(os.getenv("PER_AREA_MAX", "200"))
    AREA_MIN: float = float(os.getenv("AREA_MIN", "10"))
    AREA_MAX: float = float(os.getenv("AREA_MAX", "2000"))

    # "reference" or "midpoint"
    TOTAL_PRICE_POLICY: str = os.getenv("TOTAL_PRICE_POLICY", "reference")

    # Diagnostics
    SAMPLE_CHARS: int = int(os.getenv("SAMPLE_CHARS", "2000"))
    DEBUG_HTML_CHARS: int = int(os.getenv("DEBUG_HTML_CHARS", "20000"))

    @classmethod
    def get_config_problems(cls) -> List[str]:
        """
        Return human-readable problems with the current settings.

        Checked:
        - navigation budget fits inside the global deadline
        - every plausibility bound has min < max
        - TOTAL_PRICE_POLICY is a known value
        """
        problems = []
        if cls.NAVIGATION_TIMEOUT >= cls.GLOBAL_TIMEOUT:
            problems.append("NAVIGATION_TIMEOUT must be lower than GLOBAL_TIMEOUT")
        for low, high in (("RENT_MIN", "RENT_MAX"), ("PER_AREA_MIN", "PER_AREA_MAX"), ("AREA_MIN", "AREA_MAX")):
            if getattr(cls, low) >= getattr(cls, high):
                problems.append(f"{low} must be lower than {high}")
        if cls.TOTAL_PRICE_POLICY not in ("reference", "midpoint"):
            problems.append("TOTAL_PRICE_POLICY must be 'reference' or 'midpoint'")
        return problems


config = Config()
