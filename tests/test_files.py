import io
import os

import pytest
from PIL import Image

from contractor_hub.client.cache import ResponseCache
from contractor_hub.client.files import DELETE_CONFIRMATION, FileUploadFlow, default_label
from contractor_hub.services.storage import LocalStorageBackend, StorageError


class Confirm:
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        return self.answer


def _png_bytes(size=(640, 480)):
    buf = io.BytesIO()
    Image.new('RGB', size, 'red').save(buf, 'PNG')
    return buf.getvalue()


def _stored_files(root):
    return [name for _, _, names in os.walk(root) for name in names]


class UndeletableStorage(LocalStorageBackend):
    """Accepts uploads but cannot remove anything"""

    def delete(self, key):
        raise StorageError('backend down')


@pytest.fixture
def storage(tmp_path):
    return LocalStorageBackend(str(tmp_path / 'client-store'))


@pytest.fixture
def flow(api, cache, storage, seed):
    return FileUploadFlow(api, cache, storage, seed['job'].id, Confirm(True))


def test_default_label_strips_last_extension():
    assert default_label('floor plan.v2.pdf') == 'floor plan.v2'
    assert default_label('README') == 'README'


def test_upload_records_file_and_refreshes_list(flow, storage):
    assert len(flow.files()) == 2

    flow.select_file('floor plan.pdf', b'%PDF-1.4 test')
    assert flow.label == 'floor plan'
    assert flow.selected_file.mimetype == 'application/pdf'

    record = flow.upload()
    assert record['label'] == 'floor plan'
    assert record['filesize'] == len(b'%PDF-1.4 test')
    assert record['uploaded_by'] == 'office'
    assert record['url'] == storage.get_url(record['storage_key'])
    assert os.path.exists(os.path.join(storage.root, record['storage_key']))

    assert flow.selected_file is None
    assert flow.label == ''
    assert record['id'] in [f['id'] for f in flow.files()]


def test_upload_without_selection_does_nothing(flow, api):
    calls_before = len(api.session.calls)
    assert flow.upload() is None
    assert len(api.session.calls) == calls_before


def test_failed_record_removes_stored_object(api, cache, storage, tmp_path):
    flow = FileUploadFlow(api, cache, storage, 9999, Confirm(True))
    flow.select_file('notes.txt', b'hello')

    assert flow.upload() is None
    assert flow.notices[-1].is_error
    folder = tmp_path / 'client-store' / 'jobs' / '9999'
    assert not folder.exists() or not any(folder.iterdir())


def test_delete_needs_confirmation(api, cache, storage, seed):
    confirm = Confirm(False)
    flow = FileUploadFlow(api, cache, storage, seed['job'].id, confirm)
    calls_before = len(api.session.calls)

    assert flow.delete(seed['document'].id) is False
    assert confirm.prompts == [DELETE_CONFIRMATION]
    assert len(api.session.calls) == calls_before


def test_delete_invalidates_file_list(flow, seed):
    document_id = seed['document'].id
    assert document_id in [f['id'] for f in flow.files()]

    assert flow.delete(document_id) is True
    assert flow.cache_key not in flow.cache
    assert document_id not in [f['id'] for f in flow.files()]


def test_delete_missing_file_reports_error(flow):
    assert flow.delete(424242) is False
    assert flow.notices[-1].title == 'Delete failed'


def test_create_file_requires_fields(staff_client, seed):
    response = staff_client.post('/api/files', json={'job_id': seed['job'].id})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Missing required fields: url, filename'


def test_create_file_defaults_label_and_mimetype(staff_client, seed):
    response = staff_client.post('/api/files', json={
        'job_id': seed['job'].id,
        'url': 'https://files.example.com/product-sheet.pdf',
        'filename': 'product-sheet.pdf',
    })
    assert response.status_code == 201
    data = response.get_json()
    assert data['label'] == 'product-sheet.pdf'
    assert data['mimetype'] == 'application/pdf'


def test_multipart_image_upload_gets_thumbnail_and_is_served(app, staff_client, seed):
    response = staff_client.post(
        f"/api/jobs/{seed['job'].id}/files/upload",
        data={'file': (io.BytesIO(_png_bytes()), 'site.png'), 'label': 'Site visit'},
        content_type='multipart/form-data',
    )
    assert response.status_code == 201
    data = response.get_json()
    assert data['mimetype'] == 'image/png'
    assert data['label'] == 'Site visit'
    assert data['thumbnail_url'].startswith('/api/uploads/')

    stored = os.path.join(app.config['UPLOAD_FOLDER'], data['storage_key'])
    assert os.path.exists(stored)
    assert staff_client.get(data['url']).status_code == 200

    thumb = staff_client.get(data['thumbnail_url'])
    assert thumb.status_code == 200
    with Image.open(io.BytesIO(thumb.data)) as img:
        assert max(img.size) <= 300

    assert staff_client.delete(f"/api/files/{data['id']}").status_code == 200
    assert not os.path.exists(stored)


def test_multipart_upload_requires_file(staff_client, seed):
    response = staff_client.post(f"/api/jobs/{seed['job'].id}/files/upload", data={},
                                 content_type='multipart/form-data')
    assert response.status_code == 400


def test_local_storage_refuses_keys_outside_root(storage):
    with pytest.raises(StorageError):
        storage.delete('../../etc/passwd')


def test_failed_record_with_failing_cleanup_still_reports(anonymous_api, tmp_path, seed):
    storage = UndeletableStorage(str(tmp_path / 'client-store'))
    flow = FileUploadFlow(anonymous_api, ResponseCache(anonymous_api.get), storage, seed['job'].id, Confirm(True))
    flow.select_file('notes.txt', b'hello')

    assert flow.upload() is None
    assert flow.notices[-1].title == 'Upload failed'
    assert flow.notices[-1].is_error


def _upload(client, job_id, content, filename):
    response = client.post(
        f"/api/jobs/{job_id}/files/upload",
        data={'file': (io.BytesIO(content), filename)},
        content_type='multipart/form-data',
    )
    assert response.status_code == 201
    return response.get_json()


def test_deleting_image_removes_thumbnail_too(app, staff_client, seed):
    data = _upload(staff_client, seed['job'].id, _png_bytes(), 'hallway.png')
    assert data['thumbnail_key']
    assert len(_stored_files(app.config['UPLOAD_FOLDER'])) == 2

    assert staff_client.delete(f"/api/files/{data['id']}").status_code == 200
    assert _stored_files(app.config['UPLOAD_FOLDER']) == []


def test_deleting_job_removes_its_stored_objects(app, staff_client, seed):
    job_id = seed['job'].id
    _upload(staff_client, job_id, _png_bytes(), 'subfloor.png')
    _upload(staff_client, job_id, b'%PDF-1.4 invoice', 'invoice.pdf')
    assert len(_stored_files(app.config['UPLOAD_FOLDER'])) == 3

    assert staff_client.delete(f"/api/jobs/{job_id}").status_code == 200
    assert _stored_files(app.config['UPLOAD_FOLDER']) == []
    assert staff_client.get(f"/api/jobs/{job_id}").status_code == 404
