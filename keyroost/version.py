"""KeyRoost Meta information.
   KeyRoost keeps a local, encrypted vault of application passwords
   that can be synchronized through any blob store.
"""
__title__ = 'keyroost'
__description__ = (
   'Local-first encrypted password vault with '
   'merge-based synchronization.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 KeyRoost Developers'
__author__ = 'KeyRoost Developers'
__author_email__ = 'dev@keyroost.invalid'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/keyroost/keyroost'
