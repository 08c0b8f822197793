"""
fwctl - Baseline packet filtering for Debian/Ubuntu hosts.

Installs or removes a default-deny iptables/ip6tables policy and the
systemd units that restore it at boot.
"""

__version__ = "1.0.0"
__author__ = "Server Management Team"
