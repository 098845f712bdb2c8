import os


class StringWriter:
    """
    Accumulates generated text. Always uses "\\n" internally; the newline
    convention of the output file is applied by `to_string()`.
    """

    def __init__(self) -> None:
        self.string_builder: list[str] = []

    def write(self, text: str) -> None:
        self.string_builder.append(text)

    def write_line(self, text: str = "") -> None:
        self.string_builder.append(text)
        self.string_builder.append("\n")

    def to_string(self, newline_kind: str = "lf") -> str:
        text = "".join(self.string_builder)
        return convert_newlines(text, newline_kind)


def convert_newlines(text: str, newline_kind: str) -> str:
    """Normalizes to LF, then applies "lf", "crlf" or "os"."""
    text = text.replace("\r\n", "\n")
    if newline_kind == "lf":
        return text
    if newline_kind == "crlf":
        return text.replace("\n", "\r\n")
    if newline_kind == "os":
        return text.replace("\n", os.linesep)
    raise ValueError(f'Invalid newline_kind "{newline_kind}". Expected "lf", "crlf" or "os".')
