import glob
import json
import logging
import os
import shutil
import tempfile
from datetime import datetime

from .. import config
from .errors import PersistenceError

logger = logging.getLogger(__name__)


class BlobStore:
    """Schlüssel/Wert-Speicher für serialisierte Sammlungen.

    ``read`` liefert ``None``, wenn zu dem Schlüssel nichts gespeichert ist.
    Schreib- und Lesefehler werden als ``PersistenceError`` gemeldet.
    """

    def read(self, key):
        raise NotImplementedError

    def write(self, key, text):
        raise NotImplementedError

    def clear(self, key):
        raise NotImplementedError


class MemoryBlobStore(BlobStore):
    def __init__(self, initial=None):
        self._blobs = dict(initial or {})

    def read(self, key):
        return self._blobs.get(key)

    def write(self, key, text):
        self._blobs[key] = text

    def clear(self, key):
        self._blobs.pop(key, None)


class JsonFileBlobStore(BlobStore):
    def __init__(self, data_dir=None, backup_dir=None, max_backups=None):
        self.data_dir = data_dir or config.DATA_DIR
        self.backup_dir = backup_dir or os.path.join(self.data_dir, 'backups')
        self.max_backups = config.MAX_BACKUPS_TO_KEEP if max_backups is None else max_backups

    def path_for(self, key):
        return os.path.join(self.data_dir, f"{key}.json")

    def read(self, key):
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            logger.error(f"Fehler beim Lesen von {path}: {e}")
            raise PersistenceError(key, str(e)) from e
        except UnicodeDecodeError as e:
            logger.error(f"{path} ist kein gültiges UTF-8: {e}")
            raise PersistenceError(key, f"ungültige Kodierung: {e}") from e

    def write(self, key, text):
        path = self.path_for(key)
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            logger.error(f"Datenverzeichnis {self.data_dir} konnte nicht erstellt werden: {e}")
            raise PersistenceError(key, str(e)) from e

        if os.path.exists(path):
            self._backup(key, path)

        temp_path = None
        try:
            temp_fd, temp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f'{key}_temp_', suffix='.json')
            with os.fdopen(temp_fd, 'w', encoding='utf-8') as tmp:
                tmp.write(text)
            os.replace(temp_path, path)
        except OSError as e:
            logger.error(f"FEHLER beim Speichern von {path}: {e}")
            if temp_path and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError as e_rem:
                    logger.warning(f"Konnte temporäre Datei {temp_path} nicht löschen: {e_rem}")
            raise PersistenceError(key, str(e)) from e

    def clear(self, key):
        path = self.path_for(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(key, str(e)) from e

    def _backup(self, key, path):
        # Ein fehlgeschlagenes Backup blockiert das Speichern nicht
        try:
            os.makedirs(self.backup_dir, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            backup_path = os.path.join(self.backup_dir, f"{key}_backup_{timestamp}.json")
            shutil.copy2(path, backup_path)
        except OSError as e:
            logger.error(f"Fehler beim Erstellen des Backups von {path}: {e}")
            return
        self.cleanup_old_backups(key)

    def list_backups(self, key):
        backup_files = glob.glob(os.path.join(self.backup_dir, f"{key}_backup_*.json"))
        # Zeitstempel im Namen sortiert chronologisch
        backup_files.sort()
        return backup_files

    def cleanup_old_backups(self, key):
        backup_files = self.list_backups(key)
        if len(backup_files) <= self.max_backups:
            return
        for f_del in backup_files[:len(backup_files) - self.max_backups]:
            try:
                os.remove(f_del)
            except OSError as e:
                logger.error(f"Fehler beim Löschen der alten Backup-Datei {f_del}: {e}")


def encode_collection(items):
    return json.dumps([item.to_dict() for item in items], indent=4, ensure_ascii=False)


def decode_collection(key, text, from_dict):
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PersistenceError(key, f"korruptes JSON: {e}") from e
    if not isinstance(data, list):
        raise PersistenceError(key, f"erwartet eine Liste, nicht {type(data).__name__}")
    items = []
    for entry in data:
        try:
            items.append(from_dict(entry))
        except ValueError as e:
            raise PersistenceError(key, str(e)) from e
    return items
