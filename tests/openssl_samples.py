"""Canned OpenSSL/Tongsuo outputs used by the toolkit-path tests."""

LEAF_PEM = "-----BEGIN CERTIFICATE-----\nMIIBLEAF\n-----END CERTIFICATE-----"
INTERMEDIATE_PEM = "-----BEGIN CERTIFICATE-----\nMIIBINTERMEDIATE\n-----END CERTIFICATE-----"
ROOT_PEM = "-----BEGIN CERTIFICATE-----\nMIIBROOT\n-----END CERTIFICATE-----"
SM2_PEM = "-----BEGIN CERTIFICATE-----\nMIIBSM2LEAF\n-----END CERTIFICATE-----"
SELF_SIGNED_PEM = "-----BEGIN CERTIFICATE-----\nMIIBSELF\n-----END CERTIFICATE-----"

RSA_LEAF_TEXT = """Certificate:
    Data:
        Version: 3 (0x2)
        Serial Number:
            04:a3:8f:2b:9c:11:0e:5d:7a:61:3f:0c:a2:b4:55:19:8e:21
        Signature Algorithm: sha256WithRSAEncryption
        Issuer: C=US, O=Let's Encrypt, CN=R3
        Validity
            Not Before: Jan 10 08:00:00 2024 GMT
            Not After : Apr  9 08:00:00 2024 GMT
        Subject: CN=example.com
        Subject Public Key Info:
            Public Key Algorithm: rsaEncryption
                Public-Key: (2048 bit)
                Modulus:
                    00:c3:2a:9f:10:44:5b:7e:01:
                    9d:3c:55:0a
                Exponent: 65537 (0x10001)
        X509v3 extensions:
            X509v3 Subject Alternative Name:
                DNS:example.com, DNS:www.example.com, IP Address:93.184.216.34
            X509v3 Certificate Policies:
                Policy: 2.23.140.1.2.1
    Signature Algorithm: sha256WithRSAEncryption
    Signature Value:
        5d:1a:7c:33
sha256 Fingerprint=AB:CD:EF:01:23:45:67:89:AB:CD:EF:01:23:45:67:89:AB:CD:EF:01:23:45:67:89:AB:CD:EF:01:23:45:67:89
"""

INTERMEDIATE_TEXT = """Certificate:
    Data:
        Version: 3 (0x2)
        Serial Number:
            91:2b:08:4a:cf:0c:18:a7:53:f6:d6:2e:25:a7:5f:5a
        Signature Algorithm: sha256WithRSAEncryption
        Issuer: C=US, O=Internet Security Research Group, CN=ISRG Root X1
        Validity
            Not Before: Sep  4 00:00:00 2020 GMT
            Not After : Sep 15 16:00:00 2025 GMT
        Subject: C=US, O=Let's Encrypt, CN=R3
        Subject Public Key Info:
            Public Key Algorithm: rsaEncryption
                Public-Key: (2048 bit)
                Modulus:
                    00:bb:02:15:28:cc:f6:a0:94
                Exponent: 65537 (0x10001)
sha256 Fingerprint=67:AD:D1:16:6B:02:0A:E6:1B:8F:5F:C9:68:13:C0:4C:2A:A5:89:96:07:96:86:55:72:A3:C7:E7:37:61:3D:FD
"""

ROOT_TEXT = """Certificate:
    Data:
        Version: 3 (0x2)
        Serial Number:
            82:10:cf:b0:d2:40:e3:59:44:63:e0:bb:63:82:8b:00
        Signature Algorithm: sha256WithRSAEncryption
        Issuer: C=US, O=Internet Security Research Group, CN=ISRG Root X1
        Validity
            Not Before: Jun  4 11:04:38 2015 GMT
            Not After : Jun  4 11:04:38 2035 GMT
        Subject: C=US, O=Internet Security Research Group, CN=ISRG Root X1
        Subject Public Key Info:
            Public Key Algorithm: rsaEncryption
                Public-Key: (4096 bit)
                Modulus:
                    00:ad:e8:24:73:f4:14:37:f3
                Exponent: 65537 (0x10001)
sha256 Fingerprint=96:BC:EC:06:26:49:76:F3:74:60:77:9A:CF:28:C5:A7:CF:E8:A3:C0:AA:E1:1A:8F:FC:EE:05:C0:BD:DF:08:C6
"""

SM2_LEAF_TEXT = """Certificate:
    Data:
        Version: 3 (0x2)
        Serial Number: 4660 (0x1234)
        Signature Algorithm: SM2-with-SM3
        Issuer: C=CN, O=GMCA, CN=GM Issuing CA
        Validity
            Not Before: Mar  1 00:00:00 2024 GMT
            Not After : Mar  1 00:00:00 2025 GMT
        Subject: C=CN, ST=Beijing, L=Beijing, O=Example GM Ltd, CN=sm2.example.cn
        Subject Public Key Info:
            Public Key Algorithm: id-ecPublicKey
                Public-Key: (256 bit)
                pub:
                    04:8a:1f:2b:77:10
                ASN1 OID: SM2
        X509v3 extensions:
            X509v3 Subject Alternative Name:
                DNS:sm2.example.cn, DNS:www.sm2.example.cn
    Signature Algorithm: SM2-with-SM3
SHA256 Fingerprint=11:22:33:44:55:66:77:88:99:AA:BB:CC:DD:EE:FF:00:11:22:33:44:55:66:77:88:99:AA:BB:CC:DD:EE:FF:00
"""

SELF_SIGNED_TEXT = """Certificate:
    Data:
        Version: 3 (0x2)
        Serial Number:
            3f:00:aa
        Signature Algorithm: ecdsa-with-SHA256
        Issuer: CN=localhost
        Validity
            Not Before: Feb  2 10:00:00 2024 GMT
            Not After : Feb  1 10:00:00 2025 GMT
        Subject: CN=localhost
        Subject Public Key Info:
            Public Key Algorithm: id-ecPublicKey
                Public-Key: (256 bit)
                pub:
                    04:11:22
                ASN1 OID: prime256v1
                NIST CURVE: P-256
sha256 Fingerprint=0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F:0F
"""

TEXT_BY_PEM = {
    LEAF_PEM: RSA_LEAF_TEXT,
    INTERMEDIATE_PEM: INTERMEDIATE_TEXT,
    ROOT_PEM: ROOT_TEXT,
    SM2_PEM: SM2_LEAF_TEXT,
    SELF_SIGNED_PEM: SELF_SIGNED_TEXT,
}


def s_client_output(*pems, protocol="TLSv1.3", cipher="TLS_AES_256_GCM_SHA384"):
    lines = ["CONNECTED(00000003)", "---", "Certificate chain"]
    for i, pem in enumerate(pems):
        lines.append(f" {i} s:CN = subject-{i}")
        lines.append(pem)
    lines += [
        "---",
        f"New, {protocol}, Cipher is {cipher}",
        "SSL-Session:",
        f"    Protocol  : {protocol}",
        f"    Cipher    : {cipher}",
        "---",
    ]
    return "\n".join(lines) + "\n"
