"""Color tokens for the tulip console."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CliTheme:
    """Rich colors keyed by what they mark up, not by hue."""

    primary: str = "#E6EDF3"
    secondary: str = "#56B6C2"  # status notes
    muted: str = "#7F848E"  # timestamps, debug notes
    accent: str = "#61AFEF"
    error: str = "#E06C75"
    border: str = "#3E4451"
    prompt: str = "#98C379"
    stream: str = "#D19A66"  # "<stream> > <topic>" labels
    private: str = "#C678DD"


THEME = CliTheme()
