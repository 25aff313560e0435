"""
Service layer for the CareBook scheduling core.

``SchedulingService`` is the entry point; the component services beneath it
share its session and transaction.
"""
