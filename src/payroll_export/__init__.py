"""Payroll computation and export engine.

Turns approved attendance into categorized wage lines, resolves seniority
pay rates from wage ladders and exports lines to external payroll systems.
"""

__version__ = "0.1.0"
