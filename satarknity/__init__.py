"""
Satarknity - Community Safety Alerts
Incident reporting on top of a hosted auth, storage and table backend.
"""

__version__ = "0.2.0"
