"""Parsing of MovieObject.bdmv, the HDMV navigation programs."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field

from .constants import (
    MOBJ_FLAG_MENU_CALL_MASK,
    MOBJ_FLAG_RESUME_INTENTION,
    MOBJ_FLAG_TITLE_SEARCH_MASK,
    MOVIE_OBJECT_TABLE_OFFSET,
    NAV_COMMAND_SIZE,
    TYPE_INDICATOR_MOBJ,
    BDMVFormatError,
)

# table length(4) + reserved(4) + number of objects(2)
_TABLE_HEADER_SIZE = 4 + 4 + 2
_OBJECT_HEADER = struct.Struct(">HH")
_COMMAND = struct.Struct(">III")


@dataclass(frozen=True)
class NavigationCommand:
    """A single HDMV navigation command."""

    instruction: int
    destination: int
    source: int


@dataclass
class MovieObject:
    """A single navigation object and its commands."""

    resume_intention_flag: bool = False
    menu_call_mask: bool = False
    title_search_mask: bool = False
    commands: list[NavigationCommand] = field(default_factory=list)


@dataclass
class MovieObjectBDMV:
    """The parsed contents of a MovieObject.bdmv file."""

    version: str
    objects: list[MovieObject] = field(default_factory=list)


def parse_movie_object(path: str | os.PathLike) -> MovieObjectBDMV:
    """Parse the MovieObject.bdmv file at path.

    Objects are read until the data runs out in an object header. A command
    cut short raises BDMVFormatError, as does a file of the wrong type.
    """
    with open(path, "rb") as stream:
        type_indicator = stream.read(4)
        version = stream.read(4)
        if type_indicator != TYPE_INDICATOR_MOBJ:
            raise BDMVFormatError(f"not a MovieObject.bdmv file (got {type_indicator!r})")

        stream.seek(MOVIE_OBJECT_TABLE_OFFSET + _TABLE_HEADER_SIZE)

        objects: list[MovieObject] = []
        while len(header := stream.read(_OBJECT_HEADER.size)) == _OBJECT_HEADER.size:
            flags, command_count = _OBJECT_HEADER.unpack(header)
            commands = []
            for number in range(command_count):
                raw = stream.read(NAV_COMMAND_SIZE)
                if len(raw) < NAV_COMMAND_SIZE:
                    reason = "EOF" if not raw else "unexpected EOF"
                    raise BDMVFormatError(
                        f"reading object {len(objects)}: reading command {number}: {reason}"
                    )
                commands.append(NavigationCommand(*_COMMAND.unpack(raw)))
            objects.append(
                MovieObject(
                    resume_intention_flag=bool(flags & MOBJ_FLAG_RESUME_INTENTION),
                    menu_call_mask=bool(flags & MOBJ_FLAG_MENU_CALL_MASK),
                    title_search_mask=bool(flags & MOBJ_FLAG_TITLE_SEARCH_MASK),
                    commands=commands,
                )
            )

    return MovieObjectBDMV(version=version.decode("latin-1"), objects=objects)