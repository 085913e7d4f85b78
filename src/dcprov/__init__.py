from dcprov.__about__ import __version__
