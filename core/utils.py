# Temporary file utilities ----

import os
import shutil
import tempfile
from contextlib import contextmanager
from collections.abc import Iterator
from typing import BinaryIO

from core.exceptions import TempFileCreationError


@contextmanager
def temporary_file(
    suffix: str = "",
    directory: str | None = None,
    source: BinaryIO | None = None,
    data: bytes | None = None,
) -> Iterator[str]:
  """
  Create a uniquely named local file and delete it when the block exits.

  The file is filled from ``source`` (copied from its current position) or
  ``data`` if given. Any failure to create or fill it raises
  TempFileCreationError naming the path; the file is removed on every exit
  path, including exceptions raised inside the block.
  """
  target = directory or tempfile.gettempdir()
  try:
    fd, path = tempfile.mkstemp(suffix=suffix, dir=directory)
  except OSError as exc:
    raise TempFileCreationError(os.path.join(target, f"*{suffix}")) from exc

  try:
    try:
      with os.fdopen(fd, "wb") as handle:
        if source is not None:
          shutil.copyfileobj(source, handle)
        elif data is not None:
          handle.write(data)
    except OSError as exc:
      raise TempFileCreationError(path) from exc
    yield path
  finally:
    try:
      os.unlink(path)
    except FileNotFoundError:
      pass


def extension_suffix(extension: str | None) -> str:
  """ Turn an extension like `jpg` into a temp file suffix `.jpg` """
  if not extension:
    return ""
  return "." + extension.lstrip(".")
