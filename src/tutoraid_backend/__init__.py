'''
TutorAid Backend: billing back-office service for a tutoring business.

Teachers record students, classes, fee schedules and payments; this package
turns those records into billing summaries and per-student statements.
'''
__version__ = "0.1.0"
