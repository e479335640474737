# Database Models Module
# Contains SQLAlchemy ORM models for persistent storage

from .database import Base, init_db, drop_db, AsyncSessionLocal
from .user import User
from .folder import Folder
from .category import Category
from .design import Design, DesignPrivilege

__all__ = [
    'Base', 'init_db', 'drop_db', 'AsyncSessionLocal',
    'User', 'Folder', 'Category', 'Design', 'DesignPrivilege'
]
