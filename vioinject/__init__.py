"""vioinject: preload VirtIO drivers into Windows installer images."""

from importlib.metadata import distribution


__version__ = distribution("vioinject").version
