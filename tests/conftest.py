"""
Shared fixtures: OpenPGP test material and a PeeringService wired to mocks.

The OpenPGP material was produced with GnuPG:
    ED25519_*  Ed25519 primary key with a cv25519 encryption subkey
    RSA_*      RSA-2048 key; the challenge signed as a cleartext message,
               an inline (compressed) message and a detached signature
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from autopeer.deploy import SystemDeployer
from autopeer.peering import PeeringService
from autopeer.registry import AsObject, Registry
from autopeer.store import PeeringStore

SECRET = "test-secret-0123456789abcdef0123456789abcdef"
LOCAL_ASN = 4242420257
PEER_ASN = 4242422225
NOW = 1_700_000_000

ED25519_FINGERPRINT = "8B7F0384CBE0272761D852EA0684E36E6CF9D4D4"
ED25519_CHALLENGE = "AUTOPEER-AS4242420257-THISISATEST"

ED25519_PUBLIC_KEY = """\
-----BEGIN PGP PUBLIC KEY BLOCK-----

mDMEYVuS5RYJKwYBBAHaRw8BAQdAnJ1to/QytFqDfg3gtUrtiqmJRMSLNrG/fLNG
BesjX5m0L0ZlcmRpbmFuZCBMaW5uZW5iZXJnIDxmZXJkaW5hbmRAbGlubmVuYmVy
Zy5kZXY+iJAEExYIADgWIQSLfwOEy+AnJ2HYUuoGhONubPnU1AUCYVuS5QIbAwUL
CQgHAgYVCgkICwIEFgIDAQIeAQIXgAAKCRAGhONubPnU1M2ZAP0drb1tbnLi1cU+
Pc4NPTMjviTBBFmGFoDni/0mvMC5qAD6AlB24idciDkSeJFz3s/6wSog/Rj4ALpk
RQ/v8Ls4gQa4OARhW5LlEgorBgEEAZdVAQUBAQdAci4cwabJdJGO+VF5wxEW+yuO
Y+BPprEQpy4jFiN713sDAQgHiHgEGBYIACAWIQSLfwOEy+AnJ2HYUuoGhONubPnU
1AUCYVuS5QIbDAAKCRAGhONubPnU1I79AQC7Weudp5yzofVqZQCa/ijohC5CuwXw
LGZbH16nUawo9gEAw+6wvpgw2d7IS6rnT6jJZ1qm6inF/XzTZTNfq9rsmgM=
=WrLZ
-----END PGP PUBLIC KEY BLOCK-----
"""

ED25519_CLEARSIGNED = """\
-----BEGIN PGP SIGNED MESSAGE-----
Hash: SHA512

AUTOPEER-AS4242420257-THISISATEST

-----BEGIN PGP SIGNATURE-----

iHUEARYKAB0WIQSLfwOEy+AnJ2HYUuoGhONubPnU1AUCaPe23gAKCRAGhONubPnU
1G50AP0bnfUm+rT/lag4MFTWuaYdD7kEIa/KjJ0hOwkX5yeFlwEAqzUAznyJ3dlI
5tsRBC4VYY8aBXfA8RycPLsPLy3WZws=
=Vr9+
-----END PGP SIGNATURE-----
"""

RSA_FINGERPRINT = "76D1A2D69E5C9C8A38B9073A826CC553AD1FFCF0"
RSA_CHALLENGE = "AUTOPEER-4242422225-0123456789abcdef0123456789abcdef"

RSA_PUBLIC_KEY = """\
-----BEGIN PGP PUBLIC KEY BLOCK-----

mQENBGrVFbcBCAC4xUXR2Xoab7H5DOUcCUmPTc+hyFBngyZgVbbM1lBuzO44PNf0
Dxjxom28sGlGLh92XIQrVQjxiBn00CF6SwcncQ29HyMaqVIjpQuLeEt07Z6IbAp4
pk0dHjwYQS8ZiR2yuf5c+9tX4QR5V/GcH3mWkkZkyKIRPcmCrGlo5nBvD/DBbfZM
Q+qPNMIOUPfhaeMvrjifRz+13RAO1Og1ecnpfk3TVAUQ7Mb4+895l+0bzh4CO/Z5
othSOjBqZ6eN62eMNfi69Ki3l8SnndAplPPfDvoevYp8fRnwsPKbclRBCsOQpUGM
Cw1QNzI1+ovz5xZeBdBKPvoNzKiopojKMxLxABEBAAG0HFRlc3QgUGVlciA8dGVz
dEBleGFtcGxlLm5ldD6JAU4EEwEKADgWIQR20aLWnlyciji5BzqCbMVTrR/88AUC
atUVtwIbAwULCQgHAgYVCgkICwIEFgIDAQIeAQIXgAAKCRCCbMVTrR/88BrHB/sF
icE956gEaJgbRLnA62LE3SUVponSHNm0Al6Z6f5s1e6NiQE7nKqgoiRYzYnHOj3M
Mx9VvWPasDcVhjgsVRRiE/d2LHyhLAlH8lEMmd9MpQAPWyaNfQnNx5ALOJFlQDRP
HY/87IEi/eSWB9h6wkJHDNsk5WrO2u/BFM8DElzNO5/r5AP+pmSUGzHrzlf/qyMs
4qqj26KaPeR01WI+9K/8I02DadCxSHKuRLW3BsUw2MplDGHDCUxX05SwY1+ZvDAR
nZEiG+USJIPDsGdmPdqHtown6mVFg+4p00TE/PKjllJJOLqGiNvtyKmFpGlwXu8o
43Q/GjrKBFX2zaQ+6YUr
=D4HV
-----END PGP PUBLIC KEY BLOCK-----
"""

RSA_CLEARSIGNED = """\
-----BEGIN PGP SIGNED MESSAGE-----
Hash: SHA512

AUTOPEER-4242422225-0123456789abcdef0123456789abcdef
-----BEGIN PGP SIGNATURE-----

iQEzBAEBCgAdFiEEdtGi1p5cnIo4uQc6gmzFU60f/PAFAmrVFbcACgkQgmzFU60f
/PANjQf+Pp75gaPiQoHiKp9m/RUIrte7TPJ733/Iq7epBNSkG4+nP9St+GClw7ds
hwQg3/ZuCpj0iDONnacPZSUOuLJBykpeDr0rGDRN9/9pN5UDWoIK2fhIF10lXuaY
/+z0WSz6uHEB+aGUCziLsY5FuAHlhdC+aeWSn29p1ayQ6mN/RjWLMIhwbGLUKGhs
ZNX5rKZCMHcsa8LhomsGmjBrSN12XXimWo9Q7IwWa1DN2hZAsO6MfELqNoPrh8Aq
OLpmnJqbdy+MaArFPvnSLfRRGUgT5v18gQxSzjOMBPqKBkJu4pRalKJ4ghc0gBoE
P/WtSE7Mrf+Tx0lWonCIreEJwLfhUA==
=41v7
-----END PGP SIGNATURE-----
"""

RSA_INLINE_SIGNED = """\
-----BEGIN PGP MESSAGE-----

owGbwMvMwMXYlHM0eK38nw+Ma5yTOJIzEnP0SipKsq6KbncMDfEPcHUN0jUxAkEg
MNU1MDQyNjE1M7ewTExKTklNQ+dzdTIaszAwcjHIiimylF1cdG1ezJwui53sVjBb
WJlARjNwcQrARDbNY/+n/dXK4+7pBXpv/8x/uVlFhXezamWncPQLk28Pnv9sfqrw
6Eni7b7JZ32Nd7gfi/nXuJxV/YW+qrtjy0HXBX+W/+YVPvWsfmVfh7OE1PN19rKa
bGwr3Hdf+cV06dryK15nl4kkTGtM/Td50W7BLfcPvz3ysUUrTrgv0ozzGDtXYMTa
X3cWypz8esorKefB/1eRJ1f658WydZZF25vb/BDZ/ezimtIgB9lJpf8f+zYt2Pi6
ZULysgmppbrSJR0773aGz7fXXNwgdbRhXwd/kPiRSBmj4Pzfaw6vSXz36Y6reqJb
8URuJ37T9Avn/gnpfJCuerRL6lyKWoXjjl260zfPnSZ6/P9slTtBNa8fH92gCQA=
=U/JN
-----END PGP MESSAGE-----
"""

RSA_DETACHED_SIGNATURE = """\
-----BEGIN PGP SIGNATURE-----

iQEzBAABCgAdFiEEdtGi1p5cnIo4uQc6gmzFU60f/PAFAmrVFbcACgkQgmzFU60f
/PCyngf+K/U6SN3LoC7t/J/psyQkDbMleYkTW+g09uDn+YPlIOLkYduOk81NM7hH
xlz+gacFJ+gvJUdBhMFFoPyn+w0TyuZ/qY6IQxga564/HSkGBqhHu9T6AtLWp9RK
zaYUYJaBZf6TorsRtN/D7cTxhCpeE45ZNgnGBwpRWK363KEcyfXKSmJs4P/qWcmp
T25dBol2Wz83PPgUu+bRrHVSQB2Sdf/jTYKgseuEkGOmkGV1LRt0iLndiVefPymj
gBrFgL6ID1IXxFkcMlNv+6zDrGHu8txFJ2FGc5ELQg81Z9DO/hIs8Bt64roazmQm
eEG4ui2Xs52WFcf/myTcUnzr48WwKQ==
=r+Fx
-----END PGP SIGNATURE-----
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_peering_store(tmp_path):
    """PeeringStore rooted in a temp directory."""
    return PeeringStore(tmp_path / "pending", tmp_path / "verified")


@pytest.fixture
def mock_registry():
    """A registry that knows PEER_ASN and its RSA key."""
    registry = MagicMock(spec=Registry)
    registry.lookup_fingerprint.return_value = RSA_FINGERPRINT
    registry.lookup_as_object.return_value = AsObject(
        asn=PEER_ASN, as_name="TEST-AS", mnt_by=["TEST-MNT"],
    )
    return registry


@pytest.fixture
def mock_deployer():
    """A deployer that records calls instead of touching the host."""
    deployer = MagicMock(spec=SystemDeployer)
    deployer.is_interface_active.return_value = True
    return deployer


@pytest.fixture
def service(tmp_peering_store, mock_registry, mock_deployer):
    return PeeringService(
        local_asn=LOCAL_ASN,
        secret=SECRET,
        store=tmp_peering_store,
        registry=mock_registry,
        deployer=mock_deployer,
        clock=lambda: NOW,
    )
