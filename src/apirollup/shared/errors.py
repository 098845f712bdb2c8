class InternalError(Exception):
    """
    Raised when an internal invariant is violated.

    This always indicates a bug or a mismatch with the front-end that supplied
    the syntax tree, never a problem with the analyzed package itself.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Internal Error: {message}")
        self.unformatted_message = message
