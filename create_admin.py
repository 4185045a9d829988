"""Create the first manager account so someone can sign in and add members.

Usage: python create_admin.py <email> <password> [name]
"""

import sys

from fusion import app
from fusion.models.tables import ROLE_MANAGER
from fusion.services import team_service
from fusion.services.errors import RemoteOperationError


def main(argv) -> int:
    if len(argv) < 3:
        print(__doc__.strip().splitlines()[-1])
        return 2
    email, password = argv[1], argv[2]
    name = argv[3] if len(argv) > 3 else "Administrador"
    with app.app_context():
        try:
            profile = team_service.create_member(
                {"name": name, "email": email, "password": password, "role": ROLE_MANAGER}
            )
        except RemoteOperationError as exc:
            print(exc.user_message)
            return 1
    print(f"Gestor {profile['email']} criado.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
