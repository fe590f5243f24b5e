from upbank_proxy.app import main

main()
