"""
Accounts module - the customers licenses are issued to, and the
credentials administrators use to call the admin API.
"""
