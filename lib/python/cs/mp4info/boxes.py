#!/usr/bin/env python3

''' The box data model: box headers, the `Box` tree node,
    and the payload records for the leaf boxes which are decoded.

    Each recognised leaf box type has a `BoxPayload` subclass
    registered against its box type.
    Its `parse_range(start,end,limit)` class method is a generator
    which yields `(start,end)` read requests, receives the bytes
    for each request, and returns the payload record.
    See `cs.mp4info.parse` for the machinery which drives these.

    Payload layouts are `cs.binary.BinaryStruct` records
    whose offsets are relative to the start of the box payload,
    which begins with the version and flags bytes.
    The version and flags are read but not kept.

    A payload decoder reads its whole layout from the payload start
    even if the box is shorter, as happens with some sample entries.
    Only the end of the data being parsed limits the read.
'''

from collections import namedtuple
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from typeguard import typechecked

from cs.binary import BinaryStruct, UInt32BE, UInt64BE
from cs.logutils import debug
from cs.pfx import Pfx

from .decode import BytesLike, decode_ascii_skip_nulls, decode_uint
from .errors import InvalidAtomSize, InvalidAtomType, OutOfRange

# box types whose payload is a sequence of boxes
CONTAINER_BOX_TYPES = ('moov', 'trak', 'mdia', 'minf', 'dinf', 'stbl')

BASIC_HEADER_SIZE = 8
LARGE_HEADER_SIZE = 16

# the most bytes a header can occupy
HEADER_READ_SIZE = LARGE_HEADER_SIZE

# box_size sentinel values
BOX_SIZE_TO_END = 0
BOX_SIZE_64BIT = 1

BoxHeader = namedtuple('BoxHeader', 'size type header_size')

@typechecked
def resolve_box_header(bs: BytesLike, offset: int, end: int) -> BoxHeader:
  ''' Resolve the box header in `bs`, the header bytes read
      at `offset` within a range of boxes ending at `end`.
      Return a `BoxHeader(size,type,header_size)`.

      `bs` holds up to `HEADER_READ_SIZE` bytes;
      it is shorter when the range ends within that distance.

      Size values:
      * `0`: the box extends to `end`
      * `1`: the size is the 64 bit value following the box type
        and the header is 16 bytes long
      * otherwise the size is the 32 bit size field

      Raises `InvalidAtomType` if the type does not decode to 4 characters
      and `InvalidAtomSize` if the size cannot fit within `offset:end`.
  '''
  with Pfx("box@%d", offset):
    box_type = decode_ascii_skip_nulls(bs[4:8])
    if len(box_type) != 4:
      raise InvalidAtomType(f'invalid box type {bytes(bs[4:8])!r}')
    with Pfx(box_type):
      header_size = BASIC_HEADER_SIZE
      box_size = UInt32BE.value_from_bytes(bs[:4])
      if box_size == BOX_SIZE_TO_END:
        box_size = end - offset
        debug("box extends to the end of its range, size=%d", box_size)
      elif box_size == BOX_SIZE_64BIT:
        header_size = LARGE_HEADER_SIZE
        if len(bs) < LARGE_HEADER_SIZE:
          raise InvalidAtomSize(
              f'truncated 64 bit size field, only {end-offset} bytes remain'
          )
        box_size = UInt64BE.value_from_bytes(bs[8:16])
      if box_size < header_size:
        raise InvalidAtomSize(
            f'box size {box_size} < header size {header_size}'
        )
      if box_size > end - offset:
        raise InvalidAtomSize(
            f'box size {box_size} > {end-offset} bytes remaining'
        )
      return BoxHeader(size=box_size, type=box_type, header_size=header_size)

def read_payload(start: int, length: int, limit: int):
  ''' A generator to request the `length` bytes at `start`.
      Return the bytes.

      Raises `OutOfRange` if the request extends past `limit`,
      the end of the data being parsed.
  '''
  if start + length > limit:
    raise OutOfRange(
        f'payload at {start} needs {length} bytes, only {limit-start} available',
        start=start,
        end=start + length,
    )
  bs = yield start, start + length
  return bs

class BoxPayload:
  ''' The base class for decoded box payloads.
      Subclasses specify their box type in the class definition:

          @dataclass(frozen=True)
          class MVHDPayload(BoxPayload, box_type='mvhd'):
            ...

      and are found with `BoxPayload.for_box_type(box_type)`.
  '''

  # mapping of box type to BoxPayload subclass
  SUBCLASSES_BY_BOXTYPE = {}

  BOX_TYPE = None

  def __init_subclass__(cls, box_type=None, **kw):
    super().__init_subclass__(**kw)
    if box_type is not None:
      if box_type in BoxPayload.SUBCLASSES_BY_BOXTYPE:
        raise TypeError(
            f'{cls.__name__}: box type {box_type!r} already registered to'
            f' {BoxPayload.SUBCLASSES_BY_BOXTYPE[box_type].__name__}'
        )
      cls.BOX_TYPE = box_type
      BoxPayload.SUBCLASSES_BY_BOXTYPE[box_type] = cls

  @staticmethod
  def for_box_type(box_type: str):
    ''' Return the `BoxPayload` subclass for `box_type`, or `None`.
    '''
    return BoxPayload.SUBCLASSES_BY_BOXTYPE.get(box_type)

  @classmethod
  def parse_range(cls, start: int, end: int, limit: Optional[int] = None):
    ''' A generator to decode the payload of the box whose payload
        spans `start:end`, reading no further than `limit`
        (default `end`).
    '''
    raise NotImplementedError

MVHDFields = BinaryStruct(
    'MVHDFields',
    '>LLLLLLH',
    'version_flags creation_time modification_time timescale duration preferred_rate preferred_volume',
)

@dataclass(frozen=True)
class MVHDPayload(BoxPayload, box_type='mvhd'):
  ''' An 'mvhd' Movie Header payload - ISO14496 section 8.2.2.
  '''
  creation_time: int
  modification_time: int
  timescale: int
  duration: int
  preferred_rate: int
  preferred_volume: int

  @classmethod
  def parse_range(cls, start: int, end: int, limit: Optional[int] = None):
    bs = yield from read_payload(
        start, MVHDFields.length, end if limit is None else limit
    )
    fields, _ = MVHDFields.parse_bytes(bs)
    return cls(
        creation_time=fields.creation_time,
        modification_time=fields.modification_time,
        timescale=fields.timescale,
        duration=fields.duration,
        preferred_rate=fields.preferred_rate,
        preferred_volume=fields.preferred_volume,
    )

  @property
  def rate(self):
    ''' The preferred rate as a float: 1.0 represents normal rate.
    '''
    rate = self.preferred_rate
    return (rate >> 16) + (rate & 0xffff) / 65536.0

  @property
  def volume(self):
    ''' The preferred volume as a float: 1.0 represents full volume.
    '''
    volume = self.preferred_volume
    return (volume >> 8) + (volume & 0xff) / 256.0

HDLRFields = BinaryStruct(
    'HDLRFields', '>L4s4s', 'version_flags handler_type subtype'
)

@dataclass(frozen=True)
class HDLRPayload(BoxPayload, box_type='hdlr'):
  ''' An 'hdlr' Handler Reference payload - ISO14496 section 8.4.3.

      The `subtype` is the handler type proper,
      for example `'vide'` for a video track or `'soun'` for audio.
      The `name` runs to the end of the box.
  '''
  handler_type: str
  subtype: str
  name: str

  @classmethod
  def parse_range(cls, start: int, end: int, limit: Optional[int] = None):
    bs = yield from read_payload(
        start,
        max(HDLRFields.length, end - start),
        end if limit is None else limit,
    )
    fields, offset = HDLRFields.parse_bytes(bs)
    return cls(
        handler_type=decode_ascii_skip_nulls(fields.handler_type),
        subtype=decode_ascii_skip_nulls(fields.subtype),
        name=decode_ascii_skip_nulls(bs[offset:]),
    )

MDHDFields = BinaryStruct(
    'MDHDFields',
    '>LLLLLH',
    'version_flags creation_time modification_time timescale duration language',
)

@dataclass(frozen=True)
class MDHDPayload(BoxPayload, box_type='mdhd'):
  ''' An 'mdhd' Media Header payload - ISO14496 section 8.4.2.
  '''
  creation_time: int
  modification_time: int
  timescale: int
  duration: int
  language: int

  @classmethod
  def parse_range(cls, start: int, end: int, limit: Optional[int] = None):
    bs = yield from read_payload(
        start, MDHDFields.length, end if limit is None else limit
    )
    fields, _ = MDHDFields.parse_bytes(bs)
    return cls(
        creation_time=fields.creation_time,
        modification_time=fields.modification_time,
        timescale=fields.timescale,
        duration=fields.duration,
        language=fields.language,
    )

  @property
  def language_code(self):
    ''' The ISO 639-2/T language code decoded from the packed `language`.
    '''
    language = self.language
    return bytes(
        [
            x + 0x60 for x in (
                (language >> 10) & 0x1f,
                (language >> 5) & 0x1f,
                language & 0x1f,
            )
        ]
    ).decode('latin-1')

# the sample description header and the leading fields
# of the first (visual) sample entry
STSDFields = BinaryStruct(
    'STSDFields',
    '>LLL4s6sHHH4sLLHHH',
    (
        'version_flags entry_count entry_size data_format reserved'
        ' data_reference_index entry_version revision_level vendor'
        ' temporal_quality spatial_quality width height resolution'
    ),
)
# the optional trailing field
STSD_Y_RESOLUTION_SIZE = 2

@dataclass(frozen=True)
class STSDPayload(BoxPayload, box_type='stsd'):
  ''' An 'stsd' Sample Description payload - ISO14496 section 8.5.2.
      Only the leading fields of the first sample entry are decoded.

      `y_resolution` is `None` if the data ends before it.
  '''
  format: str
  width: int
  height: int
  resolution: int
  y_resolution: Optional[int] = None

  @classmethod
  def parse_range(cls, start: int, end: int, limit: Optional[int] = None):
    if limit is None:
      limit = end
    length = STSDFields.length
    if start + length + STSD_Y_RESOLUTION_SIZE <= limit:
      length += STSD_Y_RESOLUTION_SIZE
    bs = yield from read_payload(start, length, limit)
    fields, offset = STSDFields.parse_bytes(bs)
    return cls(
        format=decode_ascii_skip_nulls(fields.data_format),
        width=fields.width,
        height=fields.height,
        resolution=fields.resolution,
        y_resolution=decode_uint(bs[offset:]) if len(bs) > offset else None,
    )

  @property
  def x_resolution(self):
    ''' Alias for `resolution`.
    '''
    return self.resolution

STSZFields = BinaryStruct(
    'STSZFields', '>LLL', 'version_flags sample_size sample_count'
)

@dataclass(frozen=True)
class STSZPayload(BoxPayload, box_type='stsz'):
  ''' An 'stsz' Sample Size payload - ISO14496 section 8.7.3.2.
      The per sample size table is not decoded.
  '''
  sample_size: int
  sample_count: int

  @classmethod
  def parse_range(cls, start: int, end: int, limit: Optional[int] = None):
    bs = yield from read_payload(
        start, STSZFields.length, end if limit is None else limit
    )
    fields, _ = STSZFields.parse_bytes(bs)
    return cls(
        sample_size=fields.sample_size,
        sample_count=fields.sample_count,
    )

AnyPayload = Union[MVHDPayload, HDLRPayload, MDHDPayload, STSDPayload,
                   STSZPayload]

@dataclass(frozen=True)
class Box:
  ''' A box from an ISO14496 file - ISO14496 section 4.2.

      Attributes:
      * `size`: the resolved size of the box including its header
      * `type`: the 4 character box type
      * `header_size`: the header length, 8 or 16
      * `offset`: the offset of the box within the source
      * `children`: a tuple of the contained `Box`es
        for container box types, otherwise `None`
      * `payload`: the decoded payload for recognised leaf box types,
        otherwise `None`
  '''
  size: int
  type: str
  header_size: int = BASIC_HEADER_SIZE
  offset: int = 0
  children: Optional[Tuple['Box', ...]] = None
  payload: Optional[AnyPayload] = None

  def __str__(self):
    return f'{self.type}[{self.size}]'

  def __iter__(self):
    ''' Iterating over a `Box` iterates over its children, if any.
    '''
    return iter(self.children or ())

  @property
  def is_container(self):
    ''' Whether this box contains other boxes.
    '''
    return self.children is not None

  @property
  def payload_offset(self):
    ''' The offset of the box payload, immediately after the header.
    '''
    return self.offset + self.header_size

  @property
  def end_offset(self):
    ''' The offset immediately after this box.
    '''
    return self.offset + self.size

  def boxes_of_type(self, box_type: str) -> Iterable['Box']:
    ''' Iterate over the children of type `box_type`.
    '''
    return boxes_of_type(self.children, box_type)

  def first_box(self, box_type: str) -> Optional['Box']:
    ''' Return the first child of type `box_type` or `None`.
    '''
    for box in self.boxes_of_type(box_type):
      return box
    return None

def boxes_of_type(boxes: Optional[Iterable[Box]], box_type: str):
  ''' Iterate over the `Box`es in `boxes` of type `box_type`.
      A `boxes` of `None` yields nothing.
  '''
  if boxes is None:
    return
  for box in boxes:
    if box.type == box_type:
      yield box
