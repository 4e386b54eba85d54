"""
Pinned version, configuration file from a custom provider and the
configuration directory mirrored from examples/files.

Run with:
    minimal42 plan --params examples/pinned_with_dir.py --files-dir examples/files
"""

version = "5.2.3.4-1"
my_class = "shorewall::spec"
options = {"opt_a": "value_a"}

source_dir = "module:///shorewall/dir/site"
source_dir_purge = True
