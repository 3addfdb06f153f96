#!/usr/bin/env python3
"""
MongoDB Example - Store objects, embedded values and references in MongoDB.

Usage:
    python examples/mongo_example.py [mongodb://localhost:27017/plainstore-example]
"""

import sys
from datetime import datetime

from plainstore import connect, persistent


class Group:
    def __init__(self, name):
        self.name = name


@persistent
class Person:
    def __init__(self, first_name, last_name):
        self.id = None
        self.first_name = first_name
        self.last_name = last_name
        self.created_at = datetime.now().replace(microsecond=0)
        self.friends = []
        self.groups = [Group("readers"), "none"]


def main():
    url = sys.argv[1] if len(sys.argv) > 1 else "mongodb://localhost:27017/plainstore-example"
    registry = connect(url)
    people = registry.fetch(Person)

    jeff = people.find("first", conditions={"first_name": "Jeff", "last_name": "Mock"})
    if jeff is None:
        jeff = people.save(Person("Jeff", "Mock"))
    print(f"jeff = {vars(jeff)}")

    ruben = people.find("first", conditions={"first_name": "Ruben", "last_name": "Monkey"})
    if ruben is None:
        ruben = Person("Ruben", "Monkey")
        ruben.friends = [jeff]
        people.save(ruben)
    print(f"ruben = {vars(ruben)}")

    # Friends are stored as DBRefs to the people collection.
    document = people.data_store.find_one({"_id": ruben.id})
    print(f"stored ruben = {document}")


if __name__ == "__main__":
    main()
