"""Navigator Sitepass Meta information.
   Navigator Sitepass derives per-site passwords from a single master secret.
"""
__title__ = 'navigator_sitepass'
__description__ = (
   'Navigator Sitepass derives reproducible per-site passwords '
   'from a single master secret.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-sitepass'
