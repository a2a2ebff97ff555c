"""Hosting configuration — one object per process, rebuilt on explicit reload.

Merges the Flask config (env vars) with operator overrides stored in the
settings table ("mofh_config", "allowed_domains"). The resulting
HostingConfig is handed to the reseller client and the nameserver
verifier at construction time instead of being read ad hoc.

Usage:
    from hostpanel.services.hosting_config import get_hosting_config

    config = get_hosting_config()
    config.required_nameservers
"""

import logging

from flask import current_app

logger = logging.getLogger(__name__)

DEFAULT_NAMESERVERS = [
    "ns1.byet.org",
    "ns2.byet.org",
    "ns3.byet.org",
    "ns4.byet.org",
    "ns5.byet.org",
]

_EXTENSION_KEY = "hosting_config"


class HostingConfig:
    """Reseller credentials, nameserver policy, and account limits."""

    def __init__(
        self,
        api_url="https://panel.myownfreehost.net",
        api_username=None,
        api_password=None,
        default_plan="",
        cpanel_url="https://cpanel.byethost.com",
        custom_nameservers=None,
        allowed_domains=None,
        enabled=True,
        dns_resolvers=None,
        dns_timeout=5.0,
        http_timeout=30.0,
        account_limit=3,
        deactivate_limit=2,
        deactivate_window_hours=12,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_username = api_username
        self.api_password = api_password
        self.default_plan = default_plan
        self.cpanel_url = cpanel_url
        self.custom_nameservers = _normalize_list(custom_nameservers)
        self.allowed_domains = _normalize_list(allowed_domains)
        self.enabled = enabled
        self.dns_resolvers = list(dns_resolvers or ["8.8.8.8", "1.1.1.1"])
        self.dns_timeout = dns_timeout
        self.http_timeout = http_timeout
        self.account_limit = account_limit
        self.deactivate_limit = deactivate_limit
        self.deactivate_window_hours = deactivate_window_hours

    @property
    def required_nameservers(self):
        """Operator-configured nameservers, else the built-in default set."""
        return list(self.custom_nameservers or DEFAULT_NAMESERVERS)

    @property
    def is_configured(self):
        return bool(self.enabled and self.api_username and self.api_password)

    def is_domain_allowed(self, base_domain):
        """Subdomain mode: is this base domain offered? Empty list allows any."""
        if not self.allowed_domains:
            return True
        return base_domain.lower().strip() in self.allowed_domains

    @classmethod
    def load(cls, app):
        """Build from app.config, then apply settings-table overrides."""
        from hostpanel.models.setting import Setting

        cfg = app.config
        config = cls(
            api_url=cfg.get("MOFH_API_URL", "https://panel.myownfreehost.net"),
            api_username=cfg.get("MOFH_API_USERNAME"),
            api_password=cfg.get("MOFH_API_PASSWORD"),
            default_plan=cfg.get("MOFH_DEFAULT_PLAN", ""),
            cpanel_url=cfg.get("MOFH_CPANEL_URL", "https://cpanel.byethost.com"),
            custom_nameservers=cfg.get("HOSTING_NAMESERVERS"),
            allowed_domains=cfg.get("HOSTING_ALLOWED_DOMAINS"),
            dns_resolvers=cfg.get("DNS_RESOLVERS"),
            dns_timeout=cfg.get("DNS_TIMEOUT", 5.0),
            http_timeout=cfg.get("RESELLER_TIMEOUT", 30.0),
            account_limit=cfg.get("HOSTING_ACCOUNT_LIMIT", 3),
            deactivate_limit=cfg.get("DEACTIVATE_LIMIT", 2),
            deactivate_window_hours=cfg.get("DEACTIVATE_WINDOW_HOURS", 12),
        )

        mofh = Setting.get_value(Setting.MOFH_CONFIG) or {}
        if mofh:
            config.enabled = bool(mofh.get("enabled", True))
            config.api_username = mofh.get("api_username") or config.api_username
            config.api_password = mofh.get("api_password") or config.api_password
            config.default_plan = mofh.get("default_package") or config.default_plan
            config.cpanel_url = mofh.get("cpanel_url") or config.cpanel_url
            custom = mofh.get("custom_nameservers")
            if isinstance(custom, str):
                custom = custom.split(",")
            if custom:
                config.custom_nameservers = _normalize_list(custom)

        allowed = Setting.get_value(Setting.ALLOWED_DOMAINS)
        if allowed:
            config.allowed_domains = _normalize_list(
                d["domain"] for d in allowed if d.get("enabled")
            )

        return config

    def to_public_dict(self):
        """Admin view of the effective config. Never includes the API password."""
        return {
            "enabled": self.enabled,
            "api_url": self.api_url,
            "api_username": self.api_username,
            "has_api_password": bool(self.api_password),
            "default_plan": self.default_plan,
            "cpanel_url": self.cpanel_url,
            "custom_nameservers": self.custom_nameservers,
            "required_nameservers": self.required_nameservers,
            "allowed_domains": self.allowed_domains,
        }


def _normalize_list(values):
    return [v.strip().lower().rstrip(".") for v in (values or []) if v and v.strip()]


def get_hosting_config():
    """Return the cached HostingConfig for the current app, loading it once."""
    app = current_app._get_current_object()
    config = app.extensions.get(_EXTENSION_KEY)
    if config is None:
        config = HostingConfig.load(app)
        app.extensions[_EXTENSION_KEY] = config
    return config


def reload_hosting_config():
    """Drop the cached config and rebuild it from app config + settings rows."""
    app = current_app._get_current_object()
    config = HostingConfig.load(app)
    app.extensions[_EXTENSION_KEY] = config
    logger.info(
        f"Hosting config reloaded: configured={config.is_configured}, "
        f"nameservers={config.required_nameservers}"
    )
    return config
