"""
Remove shorewall and its configuration.

Run with:
    minimal42 plan --params examples/decommission.py
    minimal42 apply --params examples/decommission.py --yes
"""

absent = True
