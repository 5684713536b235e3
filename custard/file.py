import io
import os
import typing as t


class File:
    """An attachment sent along with a message.

    `fp` may be a path, raw bytes, or a binary file object opened for reading.
    """

    __slots__ = ("fp", "filename", "description", "spoiler", "_owner", "_start")

    def __init__(
        self,
        fp: t.Union[str, bytes, "os.PathLike[str]", t.BinaryIO],
        filename: t.Optional[str] = None,
        *,
        description: t.Optional[str] = None,
        spoiler: bool = False,
    ) -> None:
        if isinstance(fp, bytes):
            self.fp: t.BinaryIO = io.BytesIO(fp)
            self._owner = True
        elif isinstance(fp, (str, os.PathLike)):
            self.fp = open(fp, "rb")
            self._owner = True

            if filename is None:
                filename = os.path.basename(fp)
        else:
            self.fp = fp
            self._owner = False

        self._start = self.fp.tell()

        if filename is None:
            filename = getattr(self.fp, "name", None) or "untitled"
            filename = os.path.basename(filename)

        if spoiler and not filename.startswith("SPOILER_"):
            filename = "SPOILER_" + filename

        self.filename = filename
        self.description = description
        self.spoiler = spoiler

    def __repr__(self) -> str:
        return f"<File filename={self.filename!r} spoiler={self.spoiler}>"

    def reset(self) -> None:
        self.fp.seek(self._start)

    def close(self) -> None:
        if self._owner:
            self.fp.close()
