"""Create an ADMIN account from the command line.

Usage: python scripts/create_admin.py admin@example.com "Admin Name"
The password is read from ADMIN_PASSWORD or prompted for.
"""
import getpass
import os
import sys

from farmer_registry import create_app
from farmer_registry.errors import AppError
from farmer_registry.models import ROLE_ADMIN
from farmer_registry.services.users import create_user

def main(argv):
    if len(argv) < 2:
        print(__doc__)
        return 1

    email = argv[1]
    name = argv[2] if len(argv) > 2 else 'Administrator'
    password = os.environ.get('ADMIN_PASSWORD') or getpass.getpass('Password: ')

    app = create_app()
    with app.app_context():
        try:
            user = create_user(email, password, name, role=ROLE_ADMIN)
        except AppError as e:
            print(f'Could not create admin: {e.message}')
            return 1
        print(f'Created admin {user.email} (id {user.id})')
    return 0

if __name__ == '__main__':
    sys.exit(main(sys.argv))
