"""Performance management workflow engine.

Plans and appraisals move through a shared approval pipeline
(draft -> submitted -> supervisor_approved -> approved, with revision
requests looping back to the employee).
"""

__version__ = "0.1.0"
