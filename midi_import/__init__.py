"""Import Standard MIDI Files (bare or RIFF/RMID wrapped) into editable projects."""

from .config import ImportConfig, load_config, parse_config  # noqa: F401
from .container import RawChunk, extract_smf, iter_riff_chunks, wrap_rmid  # noqa: F401
from .errors import (  # noqa: F401
    BadHeaderError,
    FormatError,
    FormatErrorKind,
    MissingDataChunkError,
    NotMidiError,
    NotRiffMidiError,
    TruncatedError,
)
from .events import (  # noqa: F401
    ControllerEvent,
    NoteEvent,
    PitchBendEvent,
    ProgramChangeEvent,
    SmfEvent,
    TempoMetaEvent,
    TimeSignatureMetaEvent,
    TrackNameMetaEvent,
    UnhandledEvent,
)
from .instruments import DefaultInstrumentProvider, InstrumentProvider  # noqa: F401
from .project import (  # noqa: F401
    TICKS_PER_BAR,
    TICKS_PER_BEAT,
    AutomationPattern,
    AutomationTrack,
    Instrument,
    InstrumentTrack,
    Note,
    Parameter,
    Pattern,
    Project,
)
from .project_builder import ProjectBuilder, import_file, import_midi  # noqa: F401
from .sequence import Sequence, decode_sequence  # noqa: F401
from .tempo_map import DEFAULT_TEMPO, TempoMap  # noqa: F401
