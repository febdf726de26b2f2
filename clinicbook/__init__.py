"""
Clinic Appointment Scheduler

Appointment-scheduling core of a clinic-management system: slot
availability, double-booking protection, status lifecycle and
role/ownership checks on every mutation.
"""

__version__ = "1.0.0"
