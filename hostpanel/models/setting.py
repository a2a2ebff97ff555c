"""Setting model.

Key-value store for operator settings edited from the admin panel.
Known keys:
- "mofh_config":     reseller credentials, default plan, cPanel URL,
                     custom nameservers (dict)
- "allowed_domains": base domains offered for free subdomains
                     (list of {"domain": str, "enabled": bool})
"""

from hostpanel.extensions import db


class Setting(db.Model):
    __tablename__ = "settings"

    MOFH_CONFIG = "mofh_config"
    ALLOWED_DOMAINS = "allowed_domains"

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @classmethod
    def get_value(cls, key, default=None):
        row = db.session.get(cls, key)
        if row is None or row.value is None:
            return default
        return row.value

    @classmethod
    def set_value(cls, key, value):
        """Upsert a setting. Caller commits."""
        row = db.session.get(cls, key)
        if row is None:
            row = cls(key=key)
            db.session.add(row)
        row.value = value
        return row

    def __repr__(self):
        return f"<Setting {self.key}>"
