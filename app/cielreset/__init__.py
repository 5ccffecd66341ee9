"""cielreset - factory reset for ciel container instances.

Removes every path in an instance root that is neither owned by an
installed package nor protected, leaving a package-consistent system.
"""

__version__ = "0.1.0"
