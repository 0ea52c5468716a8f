#!/usr/bin/env python3

''' Video properties derived from a parsed box tree.
'''

from dataclasses import dataclass, fields
import math
from typing import Iterable, Optional, Tuple

from cs.logutils import debug

from .boxes import Box, boxes_of_type

@dataclass(frozen=True)
class Mp4Info:
  ''' The video properties of an MP4 file and its box tree.

      The properties are `None` if the boxes they come from
      are missing or hold zero values.
      The `duration` is in seconds.
  '''
  duration: Optional[float] = None
  width: Optional[int] = None
  height: Optional[int] = None
  resolution: Optional[int] = None
  frame_rate: Optional[float] = None
  boxes: Tuple[Box, ...] = ()

  def boxes_of_type(self, box_type: str) -> Iterable[Box]:
    ''' Iterate over the top level boxes of type `box_type`.
    '''
    return boxes_of_type(self.boxes, box_type)

  def as_dict(self):
    ''' Return a `dict` of the properties which are present,
        omitting the box tree.
    '''
    return {
        field.name: getattr(self, field.name)
        for field in fields(self)
        if field.name != 'boxes' and getattr(self, field.name) is not None
    }

def ratio(numerator, denominator) -> float:
  ''' Return `numerator/denominator` as a `float`.
      A zero `denominator` gives infinity, or NaN if `numerator` is also zero,
      instead of raising `ZeroDivisionError`.
  '''
  if denominator == 0:
    return math.nan if numerator == 0 else math.copysign(math.inf, numerator)
  return numerator / denominator

def _last_payload(boxes: Optional[Iterable[Box]], box_type: str):
  ''' Return the payload of the last box of type `box_type` in `boxes`,
      or `None` if there is no such box.
  '''
  payload = None
  for box in boxes_of_type(boxes, box_type):
    payload = box.payload
  return payload

def info_from_boxes(boxes: Tuple[Box, ...]) -> Mp4Info:
  ''' Compute an `Mp4Info` from the top level `boxes`.

      Only boxes within a top level `moov` contribute.
      The `duration` comes from the `mvhd` box.
      The other properties come from the video track,
      the `trak` whose `mdia` has an `hdlr` with subtype `'vide'`.
      If there are several video tracks the last one wins.
  '''
  props = {}
  video_tracks = 0
  for moov in boxes_of_type(boxes, 'moov'):
    for mvhd in moov.boxes_of_type('mvhd'):
      props['duration'] = ratio(mvhd.payload.duration, mvhd.payload.timescale)
    for trak in moov.boxes_of_type('trak'):
      for mdia in trak.boxes_of_type('mdia'):
        hdlr = _last_payload(mdia.children, 'hdlr')
        if hdlr is None or hdlr.subtype != 'vide':
          continue
        video_tracks += 1
        if video_tracks > 1:
          debug(
              "%s@%d: video track %d overrides earlier video tracks", trak,
              trak.offset, video_tracks
          )
        timescale = None
        duration = None
        mdhd = _last_payload(mdia.children, 'mdhd')
        if mdhd is not None:
          timescale = mdhd.timescale
          duration = mdhd.duration
        stsd = None
        stsz = None
        for minf in mdia.boxes_of_type('minf'):
          for stbl in minf.boxes_of_type('stbl'):
            stsd = _last_payload(stbl.children, 'stsd') or stsd
            stsz = _last_payload(stbl.children, 'stsz') or stsz
        if stsd is not None:
          if stsd.width:
            props['width'] = stsd.width
          if stsd.height:
            props['height'] = stsd.height
          if stsd.resolution:
            props['resolution'] = stsd.resolution
        sample_count = stsz.sample_count if stsz is not None else None
        if sample_count and timescale and duration:
          props['frame_rate'] = (sample_count * timescale) / duration
  return Mp4Info(boxes=boxes, **props)
