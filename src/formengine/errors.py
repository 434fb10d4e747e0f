"""Exception hierarchy shared by the engine modules."""


class FormEngineError(Exception):
    """Base class for every error the engine raises."""
    pass
