"""Drive a running server with spreading and cutting events.

Each thread plays one spreader: it takes a roll, logs a spread against a task,
and a cutter thread closes the spreads left on the tables.
"""

import random, threading, time, requests

BASE = "http://127.0.0.1:5000/api"


def get(path, **params):
    r = requests.get(f"{BASE}{path}", params=params, timeout=5)
    r.raise_for_status()
    return r.json()["data"]


def post(path, body):
    r = requests.post(f"{BASE}{path}", json=body, timeout=5)
    print(path, r.status_code, r.json()["message"])
    return r.json().get("data")


def spreader_loop(worker_id, tasks, rolls):
    for _ in range(3):
        task = random.choice(tasks)
        post("/production-logs", {
            "task_id": task["id"],
            "roll_id": random.choice(rolls)["id"],
            "worker_id": worker_id,
            "process_name": "spread",
            "layers_completed": random.randint(5, 20),
        })
        time.sleep(random.uniform(0.3, 1.2))


def cutter_loop(worker_id, rounds=6):
    for _ in range(rounds):
        for spread in get("/production-logs/unprocessed-spreads")[:2]:
            post("/production-logs", {
                "task_id": spread["task_id"],
                "parent_log_id": spread["id"],
                "worker_id": worker_id,
                "process_name": "cut",
                "layers_completed": spread["layers_completed"],
            })
        time.sleep(random.uniform(0.5, 1.0))


if __name__ == "__main__":
    workers = get("/workers")
    spreaders = [w["id"] for w in workers if w["worker_group"] == "spreading"]
    cutters = [w["id"] for w in workers if w["worker_group"] == "cutting"]
    tasks = get("/tasks")
    rolls = get("/fabric-rolls", status="available")
    if not (spreaders and cutters and tasks and rolls):
        raise SystemExit("seed the database first: python scripts/init_db.py")

    threads = [threading.Thread(target=spreader_loop, args=(w, tasks, rolls)) for w in spreaders]
    threads += [threading.Thread(target=cutter_loop, args=(w,)) for w in cutters]
    [t.start() for t in threads]
    [t.join() for t in threads]
    print("unprocessed spreads left:", len(get("/production-logs/unprocessed-spreads")))
