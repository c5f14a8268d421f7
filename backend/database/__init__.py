from .connection import get_db, get_engine, get_session_factory, init_db, close_db, Base

# Import directory models to ensure they are registered with Base
from .directory_models import ClientDB, ClientAttributeDB

__all__ = [
    'get_db', 'get_engine', 'get_session_factory', 'init_db', 'close_db', 'Base',
    'ClientDB', 'ClientAttributeDB',
]
