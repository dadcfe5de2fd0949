import pytest
from fastapi.testclient import TestClient

from c4backend.main import create_app
from c4backend.workspace_manager import WorkspaceManager


SHOP_DSL = """
workspace "Online Shop" "Sells things" {

    model {
        customer = person "Customer" "Buys things"
        shop = softwareSystem "Shop" "The web shop" {
            web = container "Web App" "Storefront" "React"
            api = container "API" "Business logic" "Python"
        }
        payments = softwareSystem "Payments" "" "External"

        customer -> web "Browses"
        web -> api "Calls" "JSON/HTTPS"
        shop.api -> payments "Charges cards"
    }

    views {
        systemLandscape "landscape" "Everything" {
            include *
            # element customer 100 50
            # element shop 400 50
            autoLayout lr
        }
        container shop "shop-containers" "Inside the shop" {
            include *
            # element web 120 300
            autoLayout lr
        }
    }
}
"""


@pytest.fixture()
def shop_dsl():
    return SHOP_DSL


@pytest.fixture()
def manager():
    manager = WorkspaceManager(max_history=10)
    manager.new_workspace(name="Test Workspace")
    return manager


@pytest.fixture()
def client():
    return TestClient(create_app(WorkspaceManager()))
