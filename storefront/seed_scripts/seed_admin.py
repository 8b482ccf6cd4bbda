import asyncio
import os
from dotenv import load_dotenv
from storefront.auth.repository import add_password_credential, password_hash_for_user, user_by_email
from storefront.auth.services import register_identity
from storefront.auth.utils import hash_password, normalize_email_address
from storefront.config.admin_config import admin_config
from storefront.db.connection import async_session

load_dotenv()


async def create_admin():
    admin_email = os.environ.get("ADMIN_EMAIL")
    admin_password = os.environ.get("ADMIN_PASSWORD")
    admin_name = os.environ.get("ADMIN_NAME", "Admin")

    if not admin_email or not admin_password:
        raise SystemExit("Set ADMIN_EMAIL and ADMIN_PASSWORD environment variables before running")

    email = normalize_email_address(admin_email)

    async with async_session() as session:
        user = await user_by_email(session, email)

        if not user:
            identity = await register_identity(session, admin_name, email, admin_password, role=admin_config.ADMIN_ROLE)
            print(f"Created admin user public_id={identity.id}")
            return

        print(f"Found existing user public_id={user.public_id}")
        if not await password_hash_for_user(session, user.id):
            await add_password_credential(session, user.id, hash_password(admin_password))
            print("Created password credential for admin user")

        if user.role != admin_config.ADMIN_ROLE:
            user.role = admin_config.ADMIN_ROLE
            print("Assigned admin role to user")
        else:
            print("User already has admin role")
        await session.commit()

    print("Done.")

if __name__ == "__main__":
    asyncio.run(create_admin())
