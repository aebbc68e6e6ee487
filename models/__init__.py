import importlib, pkgutil

# Φόρτωσε ΟΛΑ τα submodules (models.*) για να γραφτούν οι κλάσεις στο registry
for m in pkgutil.iter_modules(__path__, __name__ + "."):
    importlib.import_module(m.name)

from .user import User  # noqa: E402,F401
from .category import Category  # noqa: E402,F401
from .template import Template  # noqa: E402,F401
from .order import Order, OrderItem, OrderStatusEnum  # noqa: E402,F401
from .review import Review  # noqa: E402,F401
