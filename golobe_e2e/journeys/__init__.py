"""
Live journeys against a running Golobe deployment.

Each module runs one slice of the scenario catalog through the
ScenarioRunner in a real browser:

    test_01_auth        - sign up, sign in/out, password reset
    test_02_theme_i18n  - theme toggle and locale routing
    test_03_flights     - flight search, details and booking
    test_04_stays       - stay search, filters, booking and reviews
    test_05_account     - profile, tabs, history and favourites

Point UI_BASE_URL at the app and provide TEST_USER_EMAIL /
TEST_USER_PASSWORD (or a credential state file) for the journeys that
need a signed-in user. Without a reachable app every journey is skipped.
"""
