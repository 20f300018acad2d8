"""
VisaGuard: track travel and immigration document expiry dates and
raise alerts as deadlines approach.
"""

__version__ = "1.0.0"
