"""
Microsoft Graph group-membership lookup service.

Modules are organised into config, core (errors and handlers), services
(token acquisition, the Graph directory client and membership aggregation)
and routers.
"""

from .application import create_application
from .config import AppConfig, load_config

__all__ = ["AppConfig", "create_application", "load_config"]
