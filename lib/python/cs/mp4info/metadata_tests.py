#!/usr/bin/env python3
#
# Unit tests for cs.mp4info.metadata.
#

''' Unit tests for the cs.mp4info.metadata module.
'''

from dataclasses import FrozenInstanceError
import math
import sys
import unittest

from .metadata import Mp4Info, info_from_boxes, ratio
from .parse import parse, parse_boxes
from .sources import BytesSource
from .testsutil import (
    box_bytes,
    container_bytes,
    movie_bytes,
    mvhd_bytes,
    video_trak_bytes,
)

def info_from_bytes(bs):
  ''' Parse the transcribed boxes in `bs` and compute their `Mp4Info`.
  '''
  return info_from_boxes(parse_boxes(BytesSource(bs)))

class TestRatio(unittest.TestCase):
  ''' Tests for `ratio`.
  '''

  def test00ratio(self):
    self.assertEqual(ratio(5000, 1000), 5.0)
    self.assertEqual(ratio(1, 4), 0.25)
    self.assertIsInstance(ratio(4, 2), float)

  def test01zero_denominator(self):
    self.assertEqual(ratio(1200, 0), math.inf)
    self.assertTrue(math.isnan(ratio(0, 0)))

class TestInfoFromBoxes(unittest.TestCase):
  ''' Tests for `info_from_boxes`.
  '''

  def test00movie(self):
    info = info_from_bytes(movie_bytes())
    self.assertEqual(info.duration, 2.0)
    self.assertEqual(info.width, 640)
    self.assertEqual(info.height, 480)
    self.assertEqual(info.resolution, 72)
    self.assertEqual(info.frame_rate, 30.0)

  def test01duration_only(self):
    info = info_from_bytes(container_bytes('moov', mvhd_bytes(1000, 5000)))
    self.assertEqual(info.duration, 5.0)
    self.assertIsNone(info.width)
    self.assertIsNone(info.height)
    self.assertIsNone(info.resolution)
    self.assertIsNone(info.frame_rate)

  def test02no_moov(self):
    info = info_from_bytes(box_bytes('ftyp', b'isom') + box_bytes('mdat'))
    self.assertEqual(info.as_dict(), {})
    self.assertEqual(len(info.boxes), 2)

  def test03outside_moov_ignored(self):
    bs = mvhd_bytes(1000, 5000) + video_trak_bytes() + container_bytes('moov')
    self.assertEqual(info_from_bytes(bs).as_dict(), {})

  def test04sound_track(self):
    info = info_from_bytes(movie_bytes(video_trak_bytes(subtype='soun')))
    self.assertEqual(info.as_dict(), dict(duration=2.0))

  def test05sound_and_video(self):
    info = info_from_bytes(
        movie_bytes(
            video_trak_bytes(
                subtype='soun', width=1, height=1, resolution=1, sample_count=1
            ),
            video_trak_bytes(),
            video_trak_bytes(
                subtype='soun', width=2, height=2, resolution=2, sample_count=2
            ),
        )
    )
    self.assertEqual(
        info.as_dict(),
        dict(duration=2.0, width=640, height=480, resolution=72, frame_rate=30.0),
    )

  def test06last_video_track_wins(self):
    info = info_from_bytes(
        movie_bytes(
            video_trak_bytes(),
            video_trak_bytes(
                width=1920,
                height=1080,
                resolution=96,
                timescale=1000,
                duration=4000,
                sample_count=250,
            ),
        )
    )
    self.assertEqual(info.width, 1920)
    self.assertEqual(info.height, 1080)
    self.assertEqual(info.resolution, 96)
    self.assertEqual(info.frame_rate, 62.5)

  def test07zero_values_omitted(self):
    info = info_from_bytes(movie_bytes(video_trak_bytes(width=0, resolution=0)))
    self.assertIsNone(info.width)
    self.assertEqual(info.height, 480)
    self.assertIsNone(info.resolution)
    self.assertEqual(info.frame_rate, 30.0)

  def test08zero_values_keep_earlier(self):
    ''' A later video track with zero dimensions keeps the earlier ones.
    '''
    info = info_from_bytes(
        movie_bytes(
            video_trak_bytes(),
            video_trak_bytes(width=0, height=0, resolution=0, sample_count=0),
        )
    )
    self.assertEqual(info.width, 640)
    self.assertEqual(info.height, 480)
    self.assertEqual(info.resolution, 72)
    self.assertEqual(info.frame_rate, 30.0)

  def test09no_frame_rate(self):
    for kw in dict(sample_count=0), dict(timescale=0), dict(duration=0):
      with self.subTest(**kw):
        info = info_from_bytes(movie_bytes(video_trak_bytes(**kw)))
        self.assertIsNone(info.frame_rate)
        self.assertEqual(info.width, 640)

  def test10zero_timescale(self):
    info = info_from_bytes(movie_bytes(timescale=0, duration=1200))
    self.assertEqual(info.duration, math.inf)
    info = info_from_bytes(movie_bytes(timescale=0, duration=0))
    self.assertTrue(math.isnan(info.duration))

  def test11last_mvhd_wins(self):
    info = info_from_bytes(
        container_bytes('moov', mvhd_bytes(600, 600), mvhd_bytes(1000, 5000))
    )
    self.assertEqual(info.duration, 5.0)

class TestMp4Info(unittest.TestCase):
  ''' Tests for `Mp4Info`.
  '''

  def test00as_dict(self):
    self.assertEqual(Mp4Info().as_dict(), {})
    self.assertEqual(
        Mp4Info(duration=1.5, width=0).as_dict(), dict(duration=1.5, width=0)
    )

  def test01boxes_of_type(self):
    info = parse(movie_bytes())
    moovs = list(info.boxes_of_type('moov'))
    self.assertEqual(len(moovs), 1)
    self.assertEqual(moovs[0].type, 'moov')
    self.assertEqual(list(info.boxes_of_type('trak')), [])

  def test02frozen(self):
    info = Mp4Info(duration=1.0)
    with self.assertRaises(FrozenInstanceError):
      info.duration = 2.0  # pylint: disable=assigning-non-slot

def selftest(argv):
  ''' Run the unit tests.
  '''
  unittest.main(__name__, None, argv)

if __name__ == '__main__':
  selftest(sys.argv)
