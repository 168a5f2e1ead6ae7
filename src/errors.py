from __future__ import annotations
import os.path
import sys



class PunchError(ValueError):
    '''Base class of all errors reported to the user.'''



class InvalidRangeError(PunchError):
    '''A block whose end lies before its start, or which spans
    several calendar dates.'''



class UnparseableTokenError(PunchError):
    '''A piece of text that could not be parsed.'''



class InvalidCalendarValueError(PunchError):
    '''A day, month or year number that does not exist.'''



class ConfigError(PunchError):
    '''Malformed configuration file.'''



_me = os.path.basename(sys.argv[0]) or 'punch'


def error(message: str) -> None:
    '''Prints pretty error message.'''

    sys.stderr.write(f'{_me}: error: {message}\n')


def set_basename(name: str) -> None:
    '''Sets program name for error reports.'''

    global _me
    _me = name
