"""
jj VCS core

Runs the Jujutsu (jj) command line tool, parses its change summaries into
structured working-copy status and maps its failures onto a small error
taxonomy.
"""

__version__ = "0.1.0"
__author__ = "jj VCS core team"
