"""SiteWatch - single-target HTTP uptime watchdog with remediation and backoff"""
__version__ = "0.1.0"
