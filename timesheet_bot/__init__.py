"""
Timesheet bot: automated submission of timesheet rows into quarterly web forms
"""

__version__ = "0.1.0"
