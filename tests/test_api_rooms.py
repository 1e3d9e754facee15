"""
Tests for the room HTTP endpoints.
"""


class TestCreateRoom:
    def test_create_room_round_trip(self, client):
        """Fetching a freshly created room returns the names and join flags just set."""
        created = client.post("/api/rooms", json={"hostName": "Ada", "guestName": "Grace"})
        assert created.status_code == 200
        room_id = created.json()["roomId"]

        fetched = client.get(f"/api/rooms/{room_id}")

        assert fetched.status_code == 200
        data = fetched.json()
        assert data["roomId"] == room_id
        assert data["hostName"] == "Ada"
        assert data["guestName"] == "Grace"
        assert data["hostJoined"] is False
        assert data["guestJoined"] is False
        assert data["onlineCount"] == 0
        assert data["messageCount"] == 0
        assert data["wsUrl"] == "ws://testserver/ws"
        assert set(data["participants"]) == {"host", "guest"}

    def test_create_room_without_guest(self, client):
        data = client.post("/api/rooms", json={"hostName": "Ada"}).json()

        assert data["guestName"] is None

    def test_create_room_without_body(self, client, store):
        response = client.post("/api/rooms")

        assert response.status_code == 400
        assert response.json()["missingFields"] == ["hostName"]
        assert len(store) == 0

    def test_create_room_requires_host(self, client, store):
        response = client.post("/api/rooms", json={"guestName": "Grace"})

        assert response.status_code == 400
        assert response.json()["missingFields"] == ["hostName"]
        assert len(store) == 0

    def test_unknown_room(self, client):
        response = client.get("/api/rooms/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "Room not found"}

    def test_game_id_is_not_a_room(self, client, game_session):
        assert client.get(f"/api/rooms/{game_session}").status_code == 404


class TestJoinRoom:
    def test_join_then_fetch(self, client, room):
        response = client.post(f"/api/rooms/{room}/join", json={"role": "guest"})

        assert response.status_code == 200
        assert response.json()["guestJoined"] is True

        data = client.get(f"/api/rooms/{room}").json()
        assert data["guestJoined"] is True
        assert data["hostJoined"] is False
        assert data["guestName"] == "Grace"

    def test_join_twice_overwrites(self, client, room):
        """A second join with the same role updates the slot without adding a participant."""
        client.post(f"/api/rooms/{room}/join", json={"role": "host", "name": "Ada"})
        response = client.post(f"/api/rooms/{room}/join", json={"role": "HOST", "name": "Ada L."})

        data = response.json()
        assert data["hostJoined"] is True
        assert data["hostName"] == "Ada L."
        assert set(data["participants"]) == {"host", "guest"}

    def test_join_invalid_role(self, client, room):
        response = client.post(f"/api/rooms/{room}/join", json={"role": "spectator"})

        assert response.status_code == 400

    def test_join_missing_role(self, client, room):
        response = client.post(f"/api/rooms/{room}/join", json={"name": "Ada"})

        assert response.status_code == 400
        assert response.json()["missingFields"] == ["role"]

    def test_join_without_body(self, client, room):
        response = client.post(f"/api/rooms/{room}/join")

        assert response.status_code == 400
        assert response.json()["missingFields"] == ["role"]

    def test_join_with_non_string_name(self, client, room):
        response = client.post(f"/api/rooms/{room}/join", json={"role": "guest", "name": 123})

        assert response.status_code == 400
        assert "name" in response.json()["details"]
        assert client.get(f"/api/rooms/{room}").json()["guestName"] == "Grace"

    def test_join_unknown_room(self, client):
        assert client.post("/api/rooms/nope/join", json={"role": "host"}).status_code == 404


class TestRoomMessages:
    def test_post_message(self, client, room):
        response = client.post(f"/api/rooms/{room}/messages", json={"role": "host", "content": "Can you hear me"})

        assert response.status_code == 200
        data = response.json()
        assert data["flagged"] is False
        assert data["isBanned"] is False
        assert data["room"]["messageCount"] == 1
        assert data["room"]["messages"][0]["content"] == "Can you hear me"
        assert data["room"]["participants"]["host"]["words"] == 4

    def test_banned_role_is_forbidden(self, client, room):
        for _ in range(3):
            client.post(f"/api/rooms/{room}/messages", json={"role": "guest", "content": "shit"})

        response = client.post(f"/api/rooms/{room}/messages", json={"role": "guest", "content": "sorry"})

        assert response.status_code == 403
        assert client.get(f"/api/rooms/{room}").json()["banned"] == ["guest"]

    def test_message_is_relayed_to_room_sockets(self, client, room):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "join-room", "roomId": room})
            assert ws.receive_json()["type"] == "room-joined"

            client.post(f"/api/rooms/{room}/messages", json={"role": "guest", "content": "hello there"})

            message = ws.receive_json()
            assert message["type"] == "chat-message"
            assert message["role"] == "guest"
            assert message["name"] == "Grace"
            assert message["content"] == "hello there"
