# SPDX-License-Identifier: MIT

import uuid

type ClientId = str
type ServerId = str


def generate_client_id() -> ClientId:
    return f"c-{uuid.uuid4()}"
