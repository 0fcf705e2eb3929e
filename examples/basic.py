from types import SimpleNamespace

from pydantic import BaseModel

from waypoint import Continue
from waypoint import HTTPException
from waypoint import Middleware
from waypoint import Response
from waypoint import Settings
from waypoint import Waypoint


class Item(BaseModel):
    name: str
    price: float
    quantity: int = 1


items_db: dict[int, Item] = {}
next_id = 1


class ItemsController:
    def index(self, request, response, app):
        return [{"id": item_id, **item.model_dump()} for item_id, item in items_db.items()]

    def show(self, request, response, app):
        item_id = int(request.path_params["id"])
        if item_id not in items_db:
            raise HTTPException(404, "Item not found")
        return {"id": item_id, **items_db[item_id].model_dump()}

    def create(self, request, response, app):
        global next_id
        item = Item.model_validate(request.json())
        items_db[next_id] = item
        next_id += 1
        return Response.json({"id": next_id - 1, **item.model_dump()}, 201)

    def delete(self, request, response, app):
        if items_db.pop(int(request.path_params["id"]), None) is None:
            raise HTTPException(404, "Item not found")
        return Response.empty()


class Auth(Middleware):
    def token(self, request, response, app):
        if request.header("authorization") == "Bearer secret":
            return self.next(user="admin")
        response.set_status(401).send_json({"error": "Unauthorized"})
        return self.halt()


def index(request, response, app):
    return {"message": "Welcome to Waypoint!"}


def track_client(request, response, app):
    return Continue({"client": request.client_ip})


app = Waypoint(
    Settings.load(rate_limit=60, rate_limit_driver="memory", log_level="debug"),
    controllers=SimpleNamespace(ItemsController=ItemsController),
    middlewares=SimpleNamespace(Auth=Auth),
)

app.route("GET", "/", index, [track_client])
app.route_group(
    ("GET", "/items", "ItemsController@index"),
    [
        ("GET", "/:id", "ItemsController@show"),
        ("POST", "/", "ItemsController@create", ["Auth@token"]),
        ("DELETE", "/:id", "ItemsController@delete", ["Auth@token"]),
    ],
)


if __name__ == "__main__":
    app.run()
