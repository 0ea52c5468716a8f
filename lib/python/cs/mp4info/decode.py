#!/usr/bin/env python3

''' The primitive value decoders used for box headers and box payloads.

    All values in an ISO14496 file are big endian.
'''

from typing import Union

from typeguard import typechecked

BytesLike = Union[bytes, bytearray, memoryview]

@typechecked
def decode_uint(bs: BytesLike) -> int:
  ''' Decode the bytes `bs` as a big endian unsigned integer.
      The width is the length of `bs`; an empty `bs` decodes as `0`.

      Examples:

          >>> decode_uint(b'\\0\\0\\1\\0')
          256
          >>> decode_uint(b'\\1\\0\\0\\0\\0')
          4294967296
  '''
  n = 0
  for b in bytes(bs):
    n = (n << 8) + b
  return n

@typechecked
def decode_ascii_skip_nulls(bs: BytesLike) -> str:
  ''' Decode the bytes `bs` as a string, one character per byte,
      dropping any NUL bytes wherever they occur.
      A NUL does not terminate the string.

      Examples:

          >>> decode_ascii_skip_nulls(b'A\\0B\\0')
          'AB'
          >>> decode_ascii_skip_nulls(b'vide')
          'vide'
  '''
  return ''.join(chr(b) for b in bytes(bs) if b)
