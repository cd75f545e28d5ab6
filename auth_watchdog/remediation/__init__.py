from auth_watchdog.remediation.remediator import AuthRemediator

__all__ = ["AuthRemediator"]
