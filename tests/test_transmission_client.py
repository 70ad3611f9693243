import base64
import unittest
from unittest.mock import Mock, patch

import requests

from warehouse.core.errors import DownloadDaemonError
from warehouse.services.transmission_client import TransmissionClient


def _reply(arguments=None, result="success", tag_offset=0):
    def respond(url, json=None, timeout=None):
        response = Mock(status_code=200, headers={}, text="")
        response.json.return_value = {
            "result": result,
            "tag": json["tag"] + tag_offset,
            "arguments": arguments or {},
        }
        return response
    return respond


class TestTransmissionClient(unittest.TestCase):
    def setUp(self):
        self.client = TransmissionClient(host="nas", port=9091, timeout=5.0)

    def test_url_and_timeout(self):
        self.assertEqual(self.client.url, "http://nas:9091/transmission/rpc")
        with patch.object(self.client.session, "post", side_effect=_reply({"torrents": []})) as post:
            self.assertEqual(self.client.list_all(), [])
            self.assertEqual(post.call_args.kwargs.get("timeout"), 5.0)
            query = post.call_args.kwargs["json"]
            self.assertEqual(query["method"], "torrent-get")
            self.assertNotIn("ids", query["arguments"])

    def test_session_id_handshake(self):
        conflict = Mock(status_code=409, headers={TransmissionClient.SESSION_HEADER: "abc"}, text="")
        success = _reply({"torrents": [{"id": 4, "name": "x", "peers": [{}, {}]}]})
        calls = []

        def respond(url, json=None, timeout=None):
            calls.append(json)
            return conflict if len(calls) == 1 else success(url, json=json, timeout=timeout)

        with patch.object(self.client.session, "post", side_effect=respond):
            torrents = self.client.list_all(ids=[4], fields=["id", "name", "peers"])
        self.assertEqual(len(calls), 2)
        self.assertEqual(self.client.session.headers[TransmissionClient.SESSION_HEADER], "abc")
        self.assertEqual(torrents[0].id, 4)
        self.assertEqual(torrents[0].peers, 2)

    def test_repeated_conflict_fails(self):
        conflict = Mock(status_code=409, headers={TransmissionClient.SESSION_HEADER: "abc"}, text="")
        with patch.object(self.client.session, "post", return_value=conflict):
            with self.assertRaises(DownloadDaemonError):
                self.client.list_all()

    def test_tag_mismatch(self):
        with patch.object(self.client.session, "post", side_effect=_reply({}, tag_offset=1)):
            with self.assertRaises(DownloadDaemonError):
                self.client.call("session-get")

    def test_failed_result(self):
        with patch.object(self.client.session, "post", side_effect=_reply({}, result="invalid argument")):
            with self.assertRaises(DownloadDaemonError):
                self.client.call("torrent-get", {"fields": ["id"]})

    def test_network_error(self):
        with patch.object(self.client.session, "post", side_effect=requests.ConnectionError("refused")):
            with self.assertRaises(DownloadDaemonError):
                self.client.list_all()

    def test_submit_encodes_metainfo(self):
        reply = _reply({"torrent-added": {"id": 7, "name": "Release", "hashString": "abc"}})
        with patch.object(self.client.session, "post", side_effect=reply) as post:
            torrent = self.client.submit(b"d8:announce")
        query = post.call_args.kwargs["json"]
        self.assertEqual(query["method"], "torrent-add")
        self.assertEqual(base64.b64decode(query["arguments"]["metainfo"]), b"d8:announce")
        self.assertEqual((torrent.id, torrent.name), (7, "Release"))

    def test_submit_duplicate(self):
        reply = _reply({"torrent-duplicate": {"id": 3, "name": "Release"}})
        with patch.object(self.client.session, "post", side_effect=reply):
            self.assertEqual(self.client.submit(b"x").id, 3)

    def test_remove_deletes_local_data(self):
        with patch.object(self.client.session, "post", side_effect=_reply({})) as post:
            self.client.remove([1, 2], delete_data=True)
        arguments = post.call_args.kwargs["json"]["arguments"]
        self.assertEqual(arguments, {"ids": [1, 2], "delete-local-data": True})


if __name__ == "__main__":
    unittest.main()
