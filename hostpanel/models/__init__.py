# Models package — import all models here so Alembic can discover them.

from hostpanel.models.user import User  # noqa: F401
from hostpanel.models.setting import Setting  # noqa: F401
from hostpanel.models.hosting import HostingAccount, HostingDeactivation  # noqa: F401
