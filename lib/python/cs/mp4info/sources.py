#!/usr/bin/env python3

''' Byte sources: random access to the bytes of an MP4 file.

    The parser only ever asks a source for a range of bytes
    with `read_range(start,end)`.
    A source returns exactly `end-start` bytes or raises:
    * `OutOfRange` if the range extends past the end of the source
    * `ReadError` if the underlying storage fails or reads short

    Asynchronous sources have a true `.is_async` attribute
    and their `read_range` method is a coroutine.
'''

from abc import ABC, abstractmethod
from asyncio import Lock as AsyncLock
from inspect import iscoroutinefunction
import os
from os import fstat, pread, SEEK_END
from threading import Lock
from typing import Callable, Optional

from icontract import require

from cs.deco import Promotable
from cs.logutils import debug
from cs.pfx import pfx_call

from .errors import OutOfRange, ReadError, UnsupportedSourceType

class ByteSource(Promotable, ABC):
  ''' Abstract base class for random access byte sources.

      Instances have the following attributes:
      * `length`: the total length of the source in bytes,
        which may be `None` for an asynchronous source
        whose length has not yet been fetched
      * `is_async`: whether `read_range` is a coroutine
  '''

  is_async = False

  def __init__(self, length: Optional[int] = None, close: Optional[Callable] = None):
    ''' Initialise the source.

        Parameters:
        * `length`: the total length of the source if known
        * `close`: optional callable to release resources
          which this source owns, called once by `.close()`
    '''
    self.length = length
    self._close = close

  def __str__(self):
    return f'{self.__class__.__name__}(length={self.length})'

  def __enter__(self):
    return self

  def __exit__(self, *_):
    self.close()
    return False

  def close(self):
    ''' Release any resources owned by this source.
        Caller supplied files are not closed.
    '''
    close, self._close = self._close, None
    if close is not None:
      close()

  def check_range(self, start: int, end: int):
    ''' Raise `OutOfRange` if `start:end` is not within this source.
    '''
    if end > self.length:
      raise OutOfRange(
          f'{self}: range {start}:{end} exceeds the source length {self.length}',
          start=start,
          end=end,
      )

  @abstractmethod
  def read_range(self, start: int, end: int) -> bytes:
    ''' Return the `end-start` bytes of the source from `start`.
    '''
    raise NotImplementedError

  @classmethod
  def from_list(cls, values):
    ''' Return a `BytesSource` for a `list` of byte values.
    '''
    try:
      bs = bytes(values)
    except (TypeError, ValueError) as e:
      raise UnsupportedSourceType(
          f'{values.__class__.__name__} is not an array of byte values: {e}'
      ) from e
    return BytesSource(bs)

  from_tuple = from_list

  @classmethod
  def from_int(cls, fd: int):
    ''' Return a `FileSource` for the file descriptor `fd`.
    '''
    return FileSource(fd)

  @classmethod
  def from_str(cls, filename: str):
    ''' Return a `FileSource` for the file named `filename`.
    '''
    return FileSource.from_filename(filename)

  @classmethod
  def promote(cls, obj):
    ''' Promote `obj` to a `ByteSource`.

        Promotes:
        * `ByteSource`: returned unchanged
        * `bytes`, `bytearray`, `memoryview`: an in memory `BytesSource`
        * `list` or `tuple`: a raw array of byte values, a `BytesSource`
        * `int`: a file descriptor open for binary read, a `FileSource`
        * `str` or `os.PathLike`: a filename, opened as a `FileSource`
        * has an `async` `.read` method: an `AsyncFileSource`
        * has `.read` and `.seek` methods: a binary file, a `FileSource`

        The `list`, `tuple`, `int` and `str` promotions are done
        by the `from_`*typename* factories via `Promotable.promote`.
        Anything else raises `UnsupportedSourceType`.
    '''
    if isinstance(obj, (bytes, bytearray, memoryview)):
      return BytesSource(obj)
    if isinstance(obj, os.PathLike):
      return FileSource.from_filename(obj)
    read = getattr(obj, 'read', None)
    if read is not None and iscoroutinefunction(read):
      return AsyncFileSource(obj)
    if callable(read) and callable(getattr(obj, 'seek', None)):
      return FileSource(obj)
    try:
      return super().promote(obj)
    except UnsupportedSourceType:
      raise
    except TypeError as e:
      raise UnsupportedSourceType(
          f'{cls.__name__}.promote: cannot use {obj.__class__.__name__} as a byte source'
      ) from e

class BytesSource(ByteSource):
  ''' A `ByteSource` for data in memory.
  '''

  def __init__(self, data, **kw):
    view = memoryview(data)
    if view.format != 'B' or view.ndim != 1:
      view = view.cast('B')
    super().__init__(length=len(view), **kw)
    self.view = view

  @require(lambda self, start, end: 0 <= start <= end)
  def read_range(self, start: int, end: int) -> bytes:
    self.check_range(start, end)
    return bytes(self.view[start:end])

class FileSource(ByteSource):
  ''' A `ByteSource` for an open binary file or an operating system
      file descriptor.

      File descriptors are read with `os.pread`, leaving the file
      position alone.
      File objects are read with `seek` and `read` under a lock.
  '''

  def __init__(self, f, **kw):
    ''' Initialise the source from `f`, an `int` file descriptor
        or a seekable file object open for binary read.
    '''
    if isinstance(f, int):
      self.fd = f
      self.fp = None
      try:
        length = fstat(f).st_size
      except OSError as e:
        raise ReadError(f'cannot stat file descriptor {f}: {e}') from e
    else:
      self.fd = None
      self.fp = f
      try:
        length = f.seek(0, SEEK_END)
      except OSError as e:
        raise ReadError(f'cannot seek to the end of {f!r}: {e}') from e
    super().__init__(length=length, **kw)
    self._lock = Lock()

  @classmethod
  def from_filename(cls, filename, **kw):
    ''' Open the file named `filename` and return a new `FileSource`.
        The file is closed when the source is closed.
    '''
    try:
      f = pfx_call(open, filename, 'rb')  # pylint: disable=consider-using-with
    except OSError as e:
      raise ReadError(f'cannot open {filename!r}: {e}') from e
    debug("FileSource.from_filename: opened %r", filename)
    try:
      return cls(f, close=f.close, **kw)
    except ReadError:
      f.close()
      raise

  def _read(self, start, length):
    ''' Read up to `length` bytes at `start`.
    '''
    if self.fp is None:
      return pread(self.fd, length, start)
    with self._lock:
      self.fp.seek(start)
      return self.fp.read(length)

  @require(lambda self, start, end: 0 <= start <= end)
  def read_range(self, start: int, end: int) -> bytes:
    self.check_range(start, end)
    chunks = []
    offset = start
    while offset < end:
      try:
        bs = self._read(offset, end - offset)
      except OSError as e:
        raise ReadError(
            f'{self}: read at {offset}: {e}', start=start, end=end
        ) from e
      if not bs:
        raise ReadError(
            f'{self}: short read at {offset}, expected {end-offset} more bytes',
            start=start,
            end=end,
        )
      chunks.append(bs)
      offset += len(bs)
    return b''.join(chunks)

class AsyncFileSource(ByteSource):
  ''' A `ByteSource` for an asynchronous file like object
      such as those from `aiofiles.open`:
      its `seek` and `read` methods are coroutines.
  '''

  is_async = True

  def __init__(self, f, length: Optional[int] = None, **kw):
    super().__init__(length=length, **kw)
    self.fp = f
    self._lock = AsyncLock()

  async def fetch_length(self) -> int:
    ''' Return the source length, seeking to the end of the file if
        it is not yet known.
    '''
    if self.length is None:
      async with self._lock:
        try:
          self.length = await self.fp.seek(0, SEEK_END)
        except OSError as e:
          raise ReadError(f'cannot seek to the end of {self.fp!r}: {e}') from e
    return self.length

  @require(lambda self, start, end: 0 <= start <= end)
  async def read_range(self, start: int, end: int) -> bytes:
    await self.fetch_length()
    self.check_range(start, end)
    chunks = []
    offset = start
    async with self._lock:
      while offset < end:
        try:
          await self.fp.seek(offset)
          bs = await self.fp.read(end - offset)
        except OSError as e:
          raise ReadError(
              f'{self}: read at {offset}: {e}', start=start, end=end
          ) from e
        if not bs:
          raise ReadError(
              f'{self}: short read at {offset}, expected {end-offset} more bytes',
              start=start,
              end=end,
          )
        chunks.append(bs)
        offset += len(bs)
    return b''.join(chunks)
