#!/usr/bin/env python3

''' The box tree builder and the parsing entry points.

    The builder, `scan_boxes`, does no I/O itself.
    It is a generator which yields `(start,end)` read requests
    and is sent the bytes for each request in turn;
    its return value is the tuple of top level `Box`es.
    `run_scan` drives it from a synchronous `ByteSource`
    and `arun_scan` drives it from an asynchronous one,
    so the same parsing code serves both.

    Boxes are read strictly in order:
    the start of each box depends on the size of the box before it,
    and a container's children are complete before its next sibling
    is read.
'''

from inspect import isawaitable
from typing import Optional, Tuple

from cs.logutils import debug

from .boxes import (
    CONTAINER_BOX_TYPES,
    HEADER_READ_SIZE,
    Box,
    BoxPayload,
    resolve_box_header,
)
from .errors import UnsupportedSourceType
from .metadata import Mp4Info, info_from_boxes
from .sources import ByteSource

def scan_boxes(start: int, end: int, limit: Optional[int] = None):
  ''' A generator to parse the boxes in the range `start:end`.
      `limit` is the end of the data being parsed, default `end`;
      payload decoders may read up to it.
      It yields `(start,end)` read requests
      and expects to be sent the bytes for each.
      It returns a tuple of the `Box`es found.

      Container boxes are scanned recursively.
      Leaf boxes with a registered `BoxPayload` subclass
      have their payload decoded.
      Other boxes are recorded with only their header information.
  '''
  if limit is None:
    limit = end
  boxes = []
  offset = start
  while offset < end:
    header_bs = yield offset, min(offset + HEADER_READ_SIZE, end)
    header = resolve_box_header(header_bs, offset, end)
    box_offset = offset
    payload_offset = box_offset + header.header_size
    box_end = box_offset + header.size
    offset = box_end
    debug(
        "box@%d:%s size=%d header_size=%d", box_offset, header.type,
        header.size, header.header_size
    )
    children = None
    payload = None
    if header.type in CONTAINER_BOX_TYPES:
      children = yield from scan_boxes(payload_offset, box_end, limit)
    else:
      payload_class = BoxPayload.for_box_type(header.type)
      if payload_class is not None:
        payload = yield from payload_class.parse_range(
            payload_offset, box_end, limit
        )
    boxes.append(
        Box(
            size=header.size,
            type=header.type,
            header_size=header.header_size,
            offset=box_offset,
            children=children,
            payload=payload,
        )
    )
  return tuple(boxes)

def run_scan(scan, source: ByteSource):
  ''' Run the generator `scan`, satisfying its read requests
      from the synchronous `source`.
      Return the generator's return value.
  '''
  try:
    request = next(scan)
    while True:
      request = scan.send(source.read_range(*request))
  except StopIteration as e:
    return e.value
  finally:
    scan.close()

async def arun_scan(scan, source: ByteSource):
  ''' Run the generator `scan`, satisfying its read requests
      from `source`, awaiting the data if `source.read_range`
      returns an awaitable.
      Return the generator's return value.
  '''
  try:
    request = next(scan)
    while True:
      bs = source.read_range(*request)
      if isawaitable(bs):
        bs = await bs
      request = scan.send(bs)
  except StopIteration as e:
    return e.value
  finally:
    scan.close()

def parse_boxes(source: ByteSource, length: Optional[int] = None) -> Tuple[Box, ...]:
  ''' Parse the boxes from the synchronous `source`.
      `length` is the length of the data to parse,
      default `source.length`.
      Return a tuple of the top level `Box`es.
  '''
  if source.is_async:
    raise UnsupportedSourceType(
        f'{source} is asynchronous, use aparse_boxes() or aparse()'
    )
  if length is None:
    length = source.length
  return run_scan(scan_boxes(0, length), source)

async def aparse_boxes(source: ByteSource, length: Optional[int] = None) -> Tuple[Box, ...]:
  ''' Asynchronously parse the boxes from `source`,
      which may be synchronous or asynchronous.
      `length` is the length of the data to parse,
      default `source.length`.
      Return a tuple of the top level `Box`es.
  '''
  if length is None:
    if source.is_async:
      length = await source.fetch_length()
    else:
      length = source.length
  return await arun_scan(scan_boxes(0, length), source)

def parse(source, length: Optional[int] = None) -> Mp4Info:
  ''' Parse `source`, return an `Mp4Info` with the video properties
      and the box tree.

      `source` may be anything accepted by `ByteSource.promote`
      other than an asynchronous file.
      A source opened here from a filename is closed afterwards.

      Example:

          info = parse('movie.mp4')
          print(info.duration, info.width, info.height, info.frame_rate)
  '''
  bsrc = ByteSource.promote(source)
  try:
    return info_from_boxes(parse_boxes(bsrc, length))
  finally:
    if bsrc is not source:
      bsrc.close()

async def aparse(source, length: Optional[int] = None) -> Mp4Info:
  ''' Asynchronously parse `source`, return an `Mp4Info` with the
      video properties and the box tree.

      `source` may be anything accepted by `ByteSource.promote`,
      including an asynchronous file such as one from `aiofiles.open`.
      A source opened here from a filename is closed afterwards.
  '''
  bsrc = ByteSource.promote(source)
  try:
    return info_from_boxes(await aparse_boxes(bsrc, length))
  finally:
    if bsrc is not source:
      bsrc.close()

get_mp4_info = parse
