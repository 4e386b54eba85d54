"""
Simple params file - shorewall with the default template.

Run with:
    minimal42 plan --params examples/simple.py
    minimal42 apply --params examples/simple.py --yes
"""

options = {
    "ip_forwarding": "On",
    "verbosity": "2",
}
