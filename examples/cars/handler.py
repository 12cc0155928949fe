"""
Small cars API behind API Gateway or an ALB.
Deploy `handler.app` as the Lambda handler, or try it locally:

    lambda-router sample-event -p /cars/F-350 > event.json
    lambda-router invoke handler:app event.json
"""
import asyncio

from lambda_router import Application, Router, error_handler

CARS = {"F-350": {"make": "Ford", "seats": 5}}

app = Application()
cars = Router()


def add_request_id(req, resp, next_):
    if req.context is not None:
        resp.set("X-Request-Id", req.context.aws_request_id)
    next_()


async def list_cars(req, resp, next_):
    await asyncio.sleep(0)
    resp.cache_for_minutes(5).json(sorted(CARS))


def get_car(req, resp, next_):
    car = CARS.get(req.params["id"])
    if car is None:
        next_()
        return
    resp.json(car)


def create_car(req, resp, next_):
    if not isinstance(req.body, dict) or "id" not in req.body:
        raise ValueError("body must be a JSON object with an id")
    CARS[req.body["id"]] = {k: v for k, v in req.body.items() if k != "id"}
    resp.status(201).location(f"{req.base_url}/{req.body['id']}").json(req.body)


@error_handler
def bad_request(err, req, resp, next_):
    if not isinstance(err, ValueError):
        next_(err)
        return
    req.log.warn("Rejected request", {"err": str(err)})
    resp.status(400).json({"error": str(err)})


cars.get("/", list_cars)
cars.post("/", create_car)
cars.get("/:id", get_car)

app.use(add_request_id)
app.add_sub_router("/cars", cars)
app.use_error_handler(bad_request)
app.get("/", lambda req, resp, next_: resp.redirect("/cars"))
