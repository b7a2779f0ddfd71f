"""DMR gateway components: Golay, QR and Reed-Solomon codecs, Homebrew and MMDVM links, rules and remote control."""

__version__ = "0.1.0"