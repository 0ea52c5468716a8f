#!/usr/bin/env python3

''' Support for the `cs.mp4info` unit tests:
    synthetic boxes transcribed from `cs.binary` structures.
'''

from io import BytesIO
from os import SEEK_SET

from cs.binary import BinaryStruct

class AsyncBytesIO:
  ''' A minimal asynchronous file over some bytes,
      in the style of the files from `aiofiles.open`.
  '''

  def __init__(self, bs):
    self._f = BytesIO(bs)

  async def seek(self, offset, whence=SEEK_SET):
    return self._f.seek(offset, whence)

  async def read(self, size=-1):
    return self._f.read(size)

BoxHeader32 = BinaryStruct('BoxHeader32', '>L4s', 'box_size box_type')
BoxHeader64 = BinaryStruct(
    'BoxHeader64', '>L4sQ', 'box_size box_type box_size64'
)

MVHDFields = BinaryStruct(
    'MVHDFields',
    '>LLLLLLH',
    'version_flags creation_time modification_time timescale duration preferred_rate preferred_volume',
)
MDHDFields = BinaryStruct(
    'MDHDFields',
    '>LLLLLHH',
    'version_flags creation_time modification_time timescale duration language pre_defined',
)
HDLRFields = BinaryStruct(
    'HDLRFields', '>L4s4s', 'version_flags handler_type subtype'
)
# a sample description with one video sample entry
STSDFields = BinaryStruct(
    'STSDFields',
    '>LLL4s6sHHH4sLLHHLL',
    (
        'version_flags entry_count entry_size data_format reserved_ data_reference_index'
        ' entry_version revision_level vendor temporal_quality spatial_quality'
        ' width height h_resolution v_resolution'
    ),
)
# a sample description header and a QuickTime timecode sample entry
STSDHeader = BinaryStruct('STSDHeader', '>LL', 'version_flags entry_count')
TMCDSampleEntry = BinaryStruct(
    'TMCDSampleEntry',
    '>L4s6sHLLLLBB',
    (
        'entry_size data_format reserved_ data_reference_index reserved2_'
        ' tc_flags tc_timescale frame_duration number_of_frames reserved3_'
    ),
)
STSZFields = BinaryStruct(
    'STSZFields', '>LLL', 'version_flags sample_size sample_count'
)

def box_bytes(box_type: str, payload=b'', size=None, large=False) -> bytes:
  ''' Return the transcription of a box of type `box_type`
      containing `payload`.

      Parameters:
      * `size`: the value for the size field;
        the default is the correct size for the header and payload
      * `large`: if true, use a 16 byte header with a 64 bit size
  '''
  header_size = 16 if large else 8
  if size is None:
    size = header_size + len(payload)
  box_type = box_type.encode('latin-1')
  if large:
    header = BoxHeader64(box_size=1, box_type=box_type, box_size64=size)
  else:
    header = BoxHeader32(box_size=size, box_type=box_type)
  return bytes(header) + bytes(payload)

def container_bytes(box_type: str, *subboxes) -> bytes:
  ''' Return the transcription of a container box holding `subboxes`,
      which are already transcribed.
  '''
  return box_bytes(box_type, b''.join(subboxes))

def mvhd_bytes(timescale, duration, **kw) -> bytes:
  ''' An `mvhd` box.
  '''
  fields = dict(
      version_flags=0,
      creation_time=0,
      modification_time=0,
      preferred_rate=0x00010000,
      preferred_volume=0x0100,
  )
  fields.update(kw)
  return box_bytes(
      'mvhd', bytes(MVHDFields(timescale=timescale, duration=duration, **fields))
  )

def mdhd_bytes(timescale, duration, **kw) -> bytes:
  ''' An `mdhd` box.
  '''
  fields = dict(
      version_flags=0,
      creation_time=0,
      modification_time=0,
      language=0x55c4,  # 'und'
      pre_defined=0,
  )
  fields.update(kw)
  return box_bytes(
      'mdhd', bytes(MDHDFields(timescale=timescale, duration=duration, **fields))
  )

def hdlr_bytes(subtype: str, handler_type='mhlr', name='') -> bytes:
  ''' An `hdlr` box.
  '''
  return box_bytes(
      'hdlr',
      bytes(
          HDLRFields(
              version_flags=0,
              handler_type=handler_type.encode('latin-1'),
              subtype=subtype.encode('latin-1'),
          )
      ) + name.encode('latin-1') + b'\0',
  )

def stsd_bytes(width, height, resolution, data_format='avc1') -> bytes:
  ''' An `stsd` box with a single video sample entry.
      `resolution` is the integer part of the 16.16 horizontal
      and vertical resolutions.
  '''
  return box_bytes(
      'stsd',
      bytes(
          STSDFields(
              version_flags=0,
              entry_count=1,
              entry_size=44,
              data_format=data_format.encode('latin-1'),
              reserved_=bytes(6),
              data_reference_index=1,
              entry_version=0,
              revision_level=0,
              vendor=bytes(4),
              temporal_quality=0,
              spatial_quality=0,
              width=width,
              height=height,
              h_resolution=resolution << 16,
              v_resolution=resolution << 16,
          )
      ),
  )

def stsz_bytes(sample_count, sample_size=0) -> bytes:
  ''' An `stsz` box without a sample size table.
  '''
  return box_bytes(
      'stsz',
      bytes(
          STSZFields(
              version_flags=0,
              sample_size=sample_size,
              sample_count=sample_count,
          )
      ),
  )

def video_trak_bytes(
    timescale=600,
    duration=1200,
    width=640,
    height=480,
    resolution=72,
    sample_count=60,
    subtype='vide',
) -> bytes:
  ''' A `trak` box for a track with handler subtype `subtype`.
  '''
  return container_bytes(
      'trak',
      container_bytes(
          'mdia',
          hdlr_bytes(subtype),
          mdhd_bytes(timescale, duration),
          container_bytes(
              'minf',
              container_bytes(
                  'stbl',
                  stsd_bytes(width, height, resolution),
                  stsz_bytes(sample_count),
              ),
          ),
      ),
  )

def movie_bytes(*traks, timescale=600, duration=1200) -> bytes:
  ''' A minimal movie: an `ftyp`, a `moov` with an `mvhd`
      and the transcribed `traks`, and an empty `mdat`.
      With no `traks` there is a single video track.
  '''
  if not traks:
    traks = (video_trak_bytes(),)
  return (
      box_bytes('ftyp', b'isom\0\0\2\0isomiso2') + container_bytes(
          'moov',
          mvhd_bytes(timescale, duration),
          *traks,
      ) + box_bytes('mdat')
  )

def tmcd_stsd_bytes(tc_timescale=600, frame_duration=20) -> bytes:
  ''' An `stsd` box with a single timecode sample entry,
      whose payload is shorter than a visual sample entry.
  '''
  return box_bytes(
      'stsd',
      bytes(STSDHeader(version_flags=0, entry_count=1)) + bytes(
          TMCDSampleEntry(
              entry_size=TMCDSampleEntry.length,
              data_format=b'tmcd',
              reserved_=bytes(6),
              data_reference_index=1,
              reserved2_=0,
              tc_flags=0,
              tc_timescale=tc_timescale,
              frame_duration=frame_duration,
              number_of_frames=30,
              reserved3_=0,
          )
      ),
  )

def tmcd_trak_bytes(timescale=600, duration=1200) -> bytes:
  ''' A `trak` box for a QuickTime timecode track.
  '''
  return container_bytes(
      'trak',
      container_bytes(
          'mdia',
          hdlr_bytes('tmcd'),
          mdhd_bytes(timescale, duration),
          container_bytes(
              'minf',
              container_bytes(
                  'stbl',
                  tmcd_stsd_bytes(),
                  stsz_bytes(1),
              ),
          ),
      ),
  )
