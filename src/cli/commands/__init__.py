"""CLI command modules.

Command Groups:
- charts: Chart change detection, release, deploy and sync
"""

from .charts import charts_app

__all__ = ["charts_app"]
