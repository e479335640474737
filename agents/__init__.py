# Agents Module
# One agent per domain area: users, folders, the design lifecycle and search

from .user_agent import UserManagementAgent
from .folder_agent import FolderAgent
from .design_agent import DesignLifecycleAgent
from .search_agent import SearchAgent

__all__ = ['UserManagementAgent', 'FolderAgent', 'DesignLifecycleAgent', 'SearchAgent']
