"""
HTTP routers. Each router is mounted under /api by scorekeeper.main.
"""
from scorekeeper.routes import participants, teams, editions, events

__all__ = ["participants", "teams", "editions", "events"]
