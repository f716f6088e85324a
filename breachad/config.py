"""
breachAD Configuration Module
=============================

Centralized configuration management for the breachAD framework.
Supports environment variables for sensitive data (API keys, app secrets).

Design Decision:
- Configuration is a dataclass tree that can be passed through the pipeline
- Breach verification can be toggled off without affecting enumeration
- Output paths are configurable for flexibility in different environments
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Optional
from pathlib import Path


# Requests-per-minute tiers offered by the Have I Been Pwned subscriptions
SUPPORTED_RATE_TIERS = (10, 50, 100, 500, 1000)
DEFAULT_RATE_TIER = 10


@dataclass
class GraphConfig:
    """Configuration for the Microsoft Graph directory backend.

    Attributes:
        tenant_id: Entra ID tenant (GUID or domain)
        client_id: Application (client) id of the app registration
        client_secret: Client secret; when absent the device-code flow is used
        authority_host: Login endpoint host
        timeout: HTTP timeout in seconds
        max_retries: Retries for transient Graph responses (429/5xx)
    """
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    authority_host: str = "https://login.microsoftonline.com"
    timeout: int = 30
    max_retries: int = 2

    def __post_init__(self):
        """Load app registration details from environment if not provided."""
        if self.tenant_id is None:
            self.tenant_id = os.environ.get("AZURE_TENANT_ID")
        if self.client_id is None:
            self.client_id = os.environ.get("AZURE_CLIENT_ID")
        if self.client_secret is None:
            self.client_secret = os.environ.get("AZURE_CLIENT_SECRET")

    @property
    def authority(self) -> str:
        tenant = self.tenant_id or "organizations"
        return f"{self.authority_host.rstrip('/')}/{tenant}"


@dataclass
class LDAPConfig:
    """Configuration for the on-premises LDAP directory backend.

    Attributes:
        use_ssl: Whether to use LDAPS (port 636) vs LDAP (port 389)
        page_size: Page size for LDAP queries
        timeout: Connection timeout in seconds
    """
    use_ssl: bool = False
    port: Optional[int] = None  # Auto-detect based on use_ssl
    page_size: int = 1000
    timeout: int = 30

    def __post_init__(self):
        if self.port is None:
            self.port = 636 if self.use_ssl else 389


@dataclass
class BreachCheckConfig:
    """Configuration for breach verification.

    Attributes:
        api_key: Have I Been Pwned API key (loaded from HIBP_API_KEY)
        rate_per_minute: Subscription rate tier in requests per minute
        skip: Whether to skip verification entirely
        user_agent: User-Agent header required by the HIBP API
        timeout: HTTP timeout in seconds
    """
    api_key: Optional[str] = None
    rate_per_minute: int = DEFAULT_RATE_TIER
    skip: bool = False
    user_agent: str = "breachAD-group-audit"
    timeout: int = 30

    def __post_init__(self):
        if self.api_key is None:
            self.api_key = os.environ.get("HIBP_API_KEY")

        if self.rate_per_minute not in SUPPORTED_RATE_TIERS:
            raise ValueError(
                f"Unsupported rate tier {self.rate_per_minute}; "
                f"choose one of {', '.join(str(r) for r in SUPPORTED_RATE_TIERS)}"
            )


@dataclass
class OutputConfig:
    """Configuration for output and reporting.

    Attributes:
        output_dir: Directory for output files
        generate_html: Whether to generate the HTML report
        generate_json: Whether to generate the JSON report
        generate_csv: Whether to export members and breach results as CSV
        generate_graph: Whether to render the interactive membership graph
        generate_pdf: Whether to convert the HTML report to PDF
        browser_path: Explicit Chrome/Edge executable for PDF export
    """
    output_dir: str = "output"
    generate_html: bool = True
    generate_json: bool = True
    generate_csv: bool = True
    generate_graph: bool = True
    generate_pdf: bool = False
    browser_path: Optional[str] = None

    def __post_init__(self):
        """Ensure output directory exists."""
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)


@dataclass
class BreachADConfig:
    """Main configuration container for the breachAD framework.

    Usage:
        config = BreachADConfig()  # Uses all defaults
        config = BreachADConfig(breach=BreachCheckConfig(rate_per_minute=50))
    """
    graph: GraphConfig = field(default_factory=GraphConfig)
    ldap: LDAPConfig = field(default_factory=LDAPConfig)
    breach: BreachCheckConfig = field(default_factory=BreachCheckConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Traversal
    expand_nested: bool = True

    # Verbosity level for logging
    verbose: bool = True
    debug: bool = False

    @classmethod
    def from_dict(cls, config_dict: dict) -> "BreachADConfig":
        """Create configuration from a dictionary.

        Useful for loading from JSON files or GUI inputs.
        """
        return cls(
            graph=GraphConfig(**config_dict.get("graph", {})),
            ldap=LDAPConfig(**config_dict.get("ldap", {})),
            breach=BreachCheckConfig(**config_dict.get("breach", {})),
            output=OutputConfig(**config_dict.get("output", {})),
            expand_nested=config_dict.get("expand_nested", True),
            verbose=config_dict.get("verbose", True),
            debug=config_dict.get("debug", False)
        )

    def to_dict(self, redact_secrets: bool = True) -> dict:
        """Convert configuration to dictionary for serialization."""
        data = asdict(self)
        if redact_secrets:
            if data["graph"].get("client_secret"):
                data["graph"]["client_secret"] = "***"
            if data["breach"].get("api_key"):
                data["breach"]["api_key"] = "***"
        return data


# Default global configuration instance
_default_config: Optional[BreachADConfig] = None


def get_config() -> BreachADConfig:
    """Get the global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = BreachADConfig()
    return _default_config


def set_config(config: BreachADConfig) -> None:
    """Set the global configuration instance."""
    global _default_config
    _default_config = config
