#!/usr/bin/env python3
#
# MP4/MOV video properties from the ISO14496 box tree.
#

''' Extract basic video properties from ISO14496 files,
    the ISO Base Media File Format used by MP4 and MOV files.

    The file is parsed into a tree of boxes
    (`moov`, `trak`, `mdia`, `minf`, `dinf` and `stbl` are descended,
    `mvhd`, `hdlr`, `mdhd`, `stsd` and `stsz` are decoded)
    from which the duration, frame size, resolution and frame rate
    of the video track are derived.

    Example:

        >>> from cs.mp4info import parse
        >>> info = parse('movie.mp4')         # doctest: +SKIP
        >>> info.duration, info.frame_rate    # doctest: +SKIP
        (2.0, 30.0)

    Sources may be filenames, file descriptors, binary files,
    `bytes`like objects or lists of byte values.
    Asynchronous files such as those from `aiofiles.open`
    are parsed with `aparse`:

        async with aiofiles.open('movie.mp4', 'rb') as f:
          info = await aparse(f)

    Any failure aborts the parse with an exception from `cs.mp4info.errors`;
    there are no partial results.
'''

from .boxes import (
    CONTAINER_BOX_TYPES,
    Box,
    BoxHeader,
    BoxPayload,
    HDLRPayload,
    MDHDPayload,
    MVHDPayload,
    STSDPayload,
    STSZPayload,
    boxes_of_type,
    resolve_box_header,
)
from .decode import decode_ascii_skip_nulls, decode_uint
from .errors import (
    MP4InfoError,
    InvalidAtomSize,
    InvalidAtomType,
    OutOfRange,
    ReadError,
    UnsupportedSourceType,
)
from .metadata import Mp4Info, info_from_boxes
from .parse import (
    aparse,
    aparse_boxes,
    get_mp4_info,
    parse,
    parse_boxes,
    scan_boxes,
)
from .sources import AsyncFileSource, ByteSource, BytesSource, FileSource

__version__ = '20261019'

DISTINFO = {
    'keywords': ["python3"],
    'classifiers': [
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Video",
    ],
    'install_requires': [
        'cs.binary>=20250501',
        'cs.deco',
        'cs.logutils',
        'cs.pfx',
        'icontract',
        'typeguard',
    ],
}
