"""Small helpers shared by the command line and batch tiling code."""
from . import config


def vprint(text, level=0):
    """Print `text` when verbose output is enabled.

    Parameters
    ----------
    text : str
        Message to print.
    level : int, optional
        Required verbosity. ``verbose = true`` in the settings prints
        level 0 messages; an integer setting prints every message up to
        that level. By default 0.
    """
    verbose = config.get("verbose")
    if verbose is True:
        verbose = 0
    elif not verbose:
        return
    if level <= int(verbose):
        print(text)
