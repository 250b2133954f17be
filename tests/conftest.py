pytest_plugins = [
    "tests.fixtures.graph_fixtures",
    "tests.fixtures.app_client",
]
