"""
Entry point for running the scheduler as a module.

Usage:
    python -m season_scheduler solve problem.json -o schedule.json
    python -m season_scheduler validate problem.json
    python -m season_scheduler audit problem.json schedule.json
    python -m season_scheduler view schedule.json --team L1-T1
"""

from season_scheduler.cli import main

if __name__ == "__main__":
    main()
