#!/usr/bin/env python3
"""
Basic usage example for the DynamoDB key-value client.

This example walks one record type through every operation:
1. Setting up configuration and a typed store
2. Putting five people under one organisation
3. Reading each back and merging an address update into it
4. Matching the whole organisation with a lazy result sequence
5. Removing everything again

It expects a table named "<prefix>_<env>_people" with a string
partition key "prefix" and a string sort key "suffix".
"""

import logging

from pydantic import BaseModel

from dynamodb_keyval import (
    DynamoDBConfig,
    KeyValError,
    NotFoundError,
    RecordCodec,
    create_keyval,
)


class Person(BaseModel):
    org: str = ""
    id: str = ""
    name: str = ""
    age: int = 0
    address: str = ""

    def identity(self):
        return self.org, self.id


def main():
    """Demonstrate basic usage of the key-value client."""
    logging.basicConfig(level=logging.INFO)

    # 1. Configure DynamoDB connection
    print("1. Setting up DynamoDB configuration...")
    config = DynamoDBConfig.from_env()  # Uses environment variables

    # For local development, you might use:
    # config = DynamoDBConfig.for_local_development()

    codec = RecordCodec(Person).with_key("org", "id")
    store = create_keyval(config, "people", codec)

    people = [
        Person(
            org="test:",
            id=f"person:{i}",
            name="Verner Pleishner",
            age=64,
            address="Blumenstrasse 14, Berne, 3013"
        )
        for i in range(5)
    ]

    try:
        # 2. Create
        print("2. Putting people...")
        for person in people:
            store.put(person)

        # 3. Read and merge
        print("3. Reading and updating people...")
        for person in people:
            found = store.get(Person(org=person.org, id=person.id))
            print(f"Got: {found}")

            store.update(Person(org=person.org, id=person.id, address="Viktoriastrasse 37, Berne, 3013"))
            print(f"Updated: {store.get(Person(org=person.org, id=person.id))}")

        # 4. Match the whole organisation
        print("4. Matching organisation...")
        count = store.match(Person(org="test:")).fmap(lambda p: print(f"Matched: {p}"))
        print(f"Matched {count} people")

        # 5. Remove
        print("5. Removing people...")
        for person in people:
            store.remove(person)

        try:
            store.get(Person(org="test:", id="person:0"))
        except NotFoundError as e:
            print(f"Removed: {e.key}")
    except KeyValError as e:
        print(f"Key-value operation failed [{e.kind.value}]: {e}")
        raise

    print("\n✅ Key-Value Example Completed!")


if __name__ == "__main__":
    main()
