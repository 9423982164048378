"""DentalStock notification service package.

Keeps ``dentalstock`` a regular package so its namespace sub-packages
(``domain``, ``application``, ``infrastructure`` and ``interfaces``) resolve
from this directory.
"""
