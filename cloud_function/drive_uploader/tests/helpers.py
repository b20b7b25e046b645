BOUNDARY = "----qrUploadBoundary7MA4YWxk"
CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"


def multipart_body(fields=None, files=None, boundary=BOUNDARY):
    """
    Build a multipart/form-data body.

    fields: {name: value}
    files: [(field_name, filename, mime_type, data)]; filename/mime_type may be None
    """
    out = b""
    for name, value in (fields or {}).items():
        out += f"--{boundary}\r\n".encode()
        out += f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
        out += value.encode("utf-8") + b"\r\n"
    for name, filename, mime_type, data in files or []:
        out += f"--{boundary}\r\n".encode()
        disposition = f'Content-Disposition: form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        out += disposition.encode("utf-8") + b"\r\n"
        if mime_type is not None:
            out += f"Content-Type: {mime_type}\r\n".encode()
        out += b"\r\n" + data + b"\r\n"
    out += f"--{boundary}--\r\n".encode()
    return out


def chunked(data, size=7):
    return [data[i:i + size] for i in range(0, len(data), size)]


class FakeStorage:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def create_file(self, name, mime_type, data, parent_folder_id=None):
        self.calls.append({"name": name, "mime_type": mime_type, "data": data, "parent": parent_folder_id})
        if self.error:
            raise self.error
        return "drive-file-1"
