#!/usr/bin/env python3

''' Exceptions raised by `cs.mp4info`.

    A parse either returns a complete result or raises exactly one
    of these; nothing is retried and no partial tree is returned.
'''

class MP4InfoError(Exception):
  ''' Base class for all `cs.mp4info` exceptions.
  '''

class InvalidAtomType(MP4InfoError, ValueError):
  ''' The 4 type bytes of a box header do not decode to a 4 character tag.
  '''

class InvalidAtomSize(MP4InfoError, ValueError):
  ''' A box size is smaller than its header
      or larger than the space remaining in its enclosing range.
  '''

class ReadError(MP4InfoError):
  ''' A byte source could not supply a requested range.

      These have `.start` and `.end` attributes recording the range.
  '''

  def __init__(self, msg: str, start=None, end=None):
    super().__init__(msg)
    self.start = start
    self.end = end

class OutOfRange(ReadError):
  ''' A requested range extends beyond the available data.
  '''

class UnsupportedSourceType(MP4InfoError, TypeError):
  ''' The object supplied as a source cannot be used as a byte source.
  '''
