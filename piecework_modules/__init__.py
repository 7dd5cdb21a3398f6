"""
Piecework Modules.

Thin persistence and configuration layers over the Piecework Kernel and
Engines.

Modules:
- Reports: worker and task reference data, activity logs, attendance,
  derived report snapshots, and report settings

Actual calculation logic lives in the engines.
"""
