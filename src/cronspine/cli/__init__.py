"""Command-line interface for cronspine (Typer + Rich).

Usage::

    cronspine jobs list
    cronspine jobs create "Morning report" --cron "0 9 * * 1-5" --tz Europe/Berlin
    cronspine runs list nightly --status error --window 7d
    cronspine schedule next "*/15 * * * *" -n 3
    cronspine timeline
"""
