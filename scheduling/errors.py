# scheduling/errors.py


class ScheduleComputationError(RuntimeError):
    """A bounded walk ran out before reaching its target.

    Points at bad data or configuration (e.g. a pattern with no working days),
    not a transient fault. ``context`` holds the state needed to diagnose it.
    """

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.context = context

    def __str__(self):
        if not self.context:
            return super().__str__()
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{super().__str__()} ({details})"
