"""rcode: open a local editor on files of the remote machine you are SSHed into."""

__version__ = "0.1.0"
