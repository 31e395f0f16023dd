"""Test doubles for storage, encoding and thumbnail extraction."""
from pathlib import Path

from botocore.exceptions import ClientError, EndpointConnectionError

from videos.encoder import EncodeResult, Encoder
from videos.errors import EncodeFailure


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client calls the pipeline makes."""

    def __init__(self, failures=None, page_size=1000):
        self.objects = {}      # (bucket, key) -> {"Body": bytes, "ContentType": str}
        self.put_log = []      # successful upload keys, in order
        self.attempts = []     # every upload attempt, in order
        self.failures = dict(failures or {})  # key -> number of transient failures left
        self.buckets = set()
        self.page_size = page_size

    def upload_file(self, Filename, Bucket, Key, ExtraArgs=None):
        self.attempts.append(Key)
        if self.failures.get(Key, 0) > 0:
            self.failures[Key] -= 1
            raise EndpointConnectionError(endpoint_url="http://fake-s3:9000")
        with open(Filename, "rb") as f:
            body = f.read()
        self.objects[(Bucket, Key)] = {"Body": body, "ContentType": (ExtraArgs or {}).get("ContentType")}
        self.put_log.append(Key)

    def list_objects_v2(self, Bucket, Prefix="", ContinuationToken=None, **kwargs):
        keys = sorted(k for (b, k) in self.objects if b == Bucket and k.startswith(Prefix))
        start = int(ContinuationToken or 0)
        page = keys[start:start + self.page_size]
        resp = {"Contents": [{"Key": k} for k in page], "IsTruncated": start + self.page_size < len(keys)}
        if resp["IsTruncated"]:
            resp["NextContinuationToken"] = str(start + self.page_size)
        return resp

    def delete_objects(self, Bucket, Delete):
        for obj in Delete["Objects"]:
            self.objects.pop((Bucket, obj["Key"]), None)
        return {}

    def head_bucket(self, Bucket):
        if Bucket not in self.buckets:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket")
        return {}

    def create_bucket(self, Bucket):
        self.buckets.add(Bucket)
        return {}

    def keys(self, bucket="hls"):
        return sorted(k for (b, k) in self.objects if b == bucket)

    def body(self, key, bucket="hls") -> bytes:
        return self.objects[(bucket, key)]["Body"]


class FakeEncoder(Encoder):
    """Writes a tiny variant playlist and `segments` fake .ts files per rendition."""

    def __init__(self, segments=2, fail_on=None):
        self.segments = segments
        self.fail_on = fail_on
        self.calls = []

    def encode(self, spec, input_path, output_dir):
        self.calls.append(spec.name)
        if spec.name == self.fail_on:
            raise EncodeFailure(["ffmpeg", "-i", str(input_path)], 1, "Conversion failed!")
        segs = []
        lines = ["#EXTM3U", "#EXT-X-VERSION:3", "#EXT-X-TARGETDURATION:4", "#EXT-X-PLAYLIST-TYPE:VOD"]
        for i in range(self.segments):
            seg = Path(output_dir) / f"{spec.name}_{i:03d}.ts"
            seg.write_bytes(b"\x47" * 188)
            segs.append(seg)
            lines += ["#EXTINF:4.000000,", seg.name]
        lines.append("#EXT-X-ENDLIST")
        playlist = Path(output_dir) / spec.playlist_name
        playlist.write_text("\n".join(lines) + "\n")
        return EncodeResult(spec=spec, playlist_path=playlist, segment_paths=segs)


class FakeThumbnailer:
    def __init__(self, count=3, error=None):
        self.count = count
        self.error = error

    def extract(self, input_path, output_dir):
        if self.error:
            raise self.error
        paths = []
        for i in range(1, self.count + 1):
            p = Path(output_dir) / f"thumb_{i:04d}.jpg"
            p.write_bytes(b"\xff\xd8\xff\xd9")
            paths.append(p)
        return paths


