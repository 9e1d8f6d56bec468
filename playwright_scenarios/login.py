# playwright_scenarios/login.py
import argparse, asyncio, json, logging, sys

from login_api.browser import select_launcher
from login_api.models import Credentials
from login_api.orchestrator import attempt_login
from login_api.settings import Settings

async def main():
    p = argparse.ArgumentParser()
    p.add_argument("--username", required=True)
    p.add_argument("--password", required=True)
    p.add_argument("--login-url", default=None)      # overrides PORTAL_LOGIN_URL
    p.add_argument("--headful", action="store_true")
    p.add_argument("--local-browser", action="store_true")
    args = p.parse_args()

    overrides = {}
    if args.login_url:
        overrides["PORTAL_LOGIN_URL"] = args.login_url
    if args.headful:
        overrides["HEADLESS"] = False
    if args.local_browser:
        overrides["BROWSER_MODE"] = "local"
    settings = Settings(**overrides)

    logging.basicConfig(level=settings.LOG_LEVEL)
    print(f"[login] login_url={settings.PORTAL_LOGIN_URL} user={args.username}")

    outcome = await attempt_login(
        Credentials(username=args.username, password=args.password),
        settings=settings,
        launcher=select_launcher(settings),
    )
    print(json.dumps(outcome.model_dump(), ensure_ascii=False))

    sys.exit(0 if outcome.is_success else 1)

if __name__ == "__main__":
    asyncio.run(main())
